"""razeedeploy installer command line entry point."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from .cluster import ClusterConnection
from .config import Settings, get_settings
from .driver import ReconciliationDriver
from .install import COMPONENTS, build_install_plan
from .models import ApplyAction, ReconcileReport
from .sources import LATEST, ReleaseManifestProvider

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ABORTED = 130


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="razeedeploy-install",
        description="Install razeedeploy resources into a cluster.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "-n",
        "--namespace",
        help="namespace to populate razeedeploy resources into (Default 'razeedeploy')",
    )
    for component in COMPONENTS:
        parser.add_argument(
            f"-{component.flag}",
            f"--{component.name}",
            dest=component.name,
            nargs="?",
            const=LATEST,
            default=None,
            metavar="VERSION",
            help=f"install {component.name} at a specific version (Default 'latest')",
        )
    parser.add_argument(
        "-a",
        "--autoupdate",
        action="store_true",
        help=(
            "create a remoteresource that keeps the installed resources updated to latest "
            "(even if a version was specified)"
        ),
    )
    return parser


class Application:
    """Runs one installation pass."""

    def __init__(self, settings: Settings, args: argparse.Namespace):
        """
        Initialize application.

        Args:
            settings: Installer settings
            args: Parsed command line arguments
        """
        self.settings = settings
        self.args = args
        self.namespace = args.namespace or settings.namespace
        self._task: Optional[asyncio.Task] = None

    async def run(self) -> ReconcileReport:
        """Build the install plan and reconcile it against the cluster."""
        logger.info(f"Installing razeedeploy into namespace {self.namespace}")
        provider = ReleaseManifestProvider(
            self.settings.release_url_template,
            timeout=self.settings.download_timeout_seconds,
        )
        requested = {c.name: getattr(self.args, c.name) for c in COMPONENTS}
        entries = build_install_plan(
            self.settings,
            requested,
            provider,
            auto_update=self.args.autoupdate,
            namespace=self.namespace,
        )

        with ClusterConnection(
            kubeconfig_path=self.settings.kubeconfig_path,
            context=self.settings.kube_context,
            request_timeout=self.settings.request_timeout_seconds,
        ) as cluster:
            driver = ReconciliationDriver(
                cluster.resolver(),
                self.namespace,
                readiness_max_attempts=self.settings.readiness_max_attempts,
                readiness_initial_backoff_ms=self.settings.readiness_initial_backoff_ms,
            )
            self._task = asyncio.create_task(driver.run(entries))
            try:
                return await self._task
            except asyncio.CancelledError:
                return driver.report

    def handle_signal(self, sig: int) -> None:
        """
        Handle shutdown signals.

        Args:
            sig: Signal number
        """
        logger.info(f"Received signal {sig}, aborting installation...")
        if self._task and not self._task.done():
            self._task.cancel()


def summarize(report: ReconcileReport) -> int:
    """
    Log a run summary.

    Returns:
        Process exit status
    """
    for outcome in report.failed:
        logger.error(f"Failed {outcome.resource_id}: {outcome.error_detail}")
    for failure in report.entry_failures:
        logger.error(f"Skipped {failure.name}: {failure.reason}")

    logger.info(
        f"Created {report.count(ApplyAction.CREATED)}, "
        f"updated {report.count(ApplyAction.UPDATED)}, "
        f"already present {report.count(ApplyAction.ALREADY_SKIPPED)}, "
        f"failed {report.count(ApplyAction.FAILED)}, "
        f"skipped steps {len(report.entry_failures)}"
    )

    if report.aborted:
        return EXIT_ABORTED
    return EXIT_OK if report.succeeded else EXIT_FAILED


async def _main(settings: Settings, args: argparse.Namespace) -> int:
    app = Application(settings, args)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.handle_signal, sig)

    report = await app.run()
    return summarize(report)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return asyncio.run(_main(settings, args))
    except ValueError as e:
        logger.error(str(e))
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
