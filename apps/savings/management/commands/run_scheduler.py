import asyncio

from django.core.management.base import BaseCommand

from apps.savings.scheduler import SavingsPlanScheduler


class Command(BaseCommand):
    help = "Execute due savings plans and take daily depot value snapshots"

    def add_arguments(self, parser):
        parser.add_argument('--once', action='store_true', help="Run a single tick and exit")
        parser.add_argument('--interval', type=float, default=None, help="Seconds between ticks")

    def handle(self, *args, **options):
        scheduler = SavingsPlanScheduler(interval=options['interval'])

        if options['once']:
            report = scheduler.tick()
            self.stdout.write(self.style.SUCCESS(f"Tick done: {report.summary()}"))
            return

        self.stdout.write(f"Scheduler running every {scheduler.interval}s, Ctrl+C to stop")
        try:
            asyncio.run(scheduler.main_loop())
        except KeyboardInterrupt:
            scheduler.running = False
            self.stdout.write("Scheduler stopped")
