import argparse
import logging

from rescheduler.config import load_settings
from rescheduler.domain import OrchestratorState
from rescheduler.notifier import Notifier
from rescheduler.worker import run_check_once, run_forever


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logging.getLogger("selenium").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("WDM").setLevel(logging.WARNING)


def main() -> int:
    parser = argparse.ArgumentParser(description="Visa appointment rescheduler: claims earlier interview dates")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    args = parser.parse_args()

    _setup_logging()
    settings = load_settings()
    notifier = Notifier(settings)
    state = OrchestratorState(current_date=settings.current_date)

    # Notifier.send never raises; delivery problems end up in the log.
    notifier.send(
        "Started looking for appointment dates earlier than "
        f"{settings.current_date.isoformat()}\n"
        f"Mode: {'once' if args.once else 'forever'}, interval={settings.check_interval_seconds}s"
    )

    try:
        if args.once:
            run_check_once(settings, state, notifier)
            return 0

        run_forever(settings, state, notifier)
        return 0

    except Exception as e:
        notifier.send(f"Rescheduler crashed.\nReason: {type(e).__name__}: {e}")
        raise

    finally:
        notifier.send(f"Rescheduler stopped. Held appointment date: {state.current_date.isoformat()}")


if __name__ == "__main__":
    raise SystemExit(main())
