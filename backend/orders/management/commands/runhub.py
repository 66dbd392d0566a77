import uvicorn
from django.conf import settings
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = "Run the order hub ASGI server on the configured PORT"

    def add_arguments(self, parser):
        parser.add_argument(
            "--host",
            default="0.0.0.0",
            help="Interface to listen on",
        )
        parser.add_argument(
            "--port",
            type=int,
            default=None,
            help="Port to listen on (defaults to the PORT environment variable)",
        )

    def handle(self, *args, **options):
        port = options["port"] or settings.PORT

        self.stdout.write(self.style.SUCCESS(f"SyncStay running on port {port}"))

        # Orders live in this process, so a single worker and no reloader
        uvicorn.run(
            "core_backend.asgi:application",
            host=options["host"],
            port=port,
            workers=1,
            reload=False,
            log_level=settings.LOG_LEVEL.lower(),
        )
