from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from apps.core.academic_years.exceptions import AuthorizationError, StoreError, TransitionCancelled
from apps.core.academic_years.transition import start_new_academic_year


class Command(BaseCommand):
    help = 'Promotes students into a new academic year and carries unpaid fee balances forward'

    def add_arguments(self, parser):
        parser.add_argument('new_year', help='Label of the academic year to start, e.g. 2026-2027')
        parser.add_argument(
            '--actor',
            required=True,
            help='Username of the administrator running the transition',
        )
        parser.add_argument('--batch-size', type=int, default=None)
        parser.add_argument('--page-size', type=int, default=None)
        parser.add_argument(
            '--isolate-failures',
            action='store_true',
            help='Record failing students and continue instead of aborting the run',
        )

    def handle(self, *args, **options):
        user_model = get_user_model()
        actor = user_model.objects.filter(username=options['actor']).first()
        if actor is None:
            raise CommandError(f"User {options['actor']} not found.")

        try:
            result = start_new_academic_year(
                options['new_year'],
                actor,
                batch_size=options['batch_size'],
                page_size=options['page_size'],
                isolate_failures=options['isolate_failures'],
            )
        except AuthorizationError as exc:
            raise CommandError(str(exc)) from exc
        except ValidationError as exc:
            raise CommandError(' '.join(exc.messages)) from exc
        except (StoreError, TransitionCancelled) as exc:
            raise CommandError(f"{exc} Already committed batches are kept; re-run to finish.") from exc

        for failure in result.errors:
            self.stdout.write(self.style.WARNING(
                f"Skipped student {failure['admission_number']}: {failure['error']}"
            ))
        self.stdout.write(self.style.SUCCESS(
            f"Transition to {options['new_year'].strip()} complete: "
            f"{result.promoted_count} promoted, {result.retained_count} retained, "
            f"{result.graduated_count} graduated, {result.skipped_count} skipped."
        ))
