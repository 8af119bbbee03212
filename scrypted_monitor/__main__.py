"""
CLI entry point.

Usage:
    python -m scrypted_monitor [--host HOST] [--port PORT]
    python -m scrypted_monitor --run-task NAME

Without ``--run-task`` the API server starts and the reconciler keeps the
task timers running. With it, the named task runs once and its report is
printed.

Exit Codes:
    0 - Success
    1 - Task not found
    2 - Task execution failed
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="python -m scrypted_monitor",
        description="Run scheduled maintenance tasks for Scrypted.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="API bind address")
    parser.add_argument("--port", type=int, default=8080, help="API port")
    parser.add_argument(
        "--run-task",
        metavar="NAME",
        help="Execute one configured task now and exit",
    )
    return parser.parse_args()


async def run_once(task_name: str) -> int:
    from scrypted_monitor.config import get_settings
    from scrypted_monitor.services.home_assistant_service import HomeAssistantService
    from scrypted_monitor.services.host_bridge_service import HostBridgeClient
    from scrypted_monitor.services.logging_service import configure_logging
    from scrypted_monitor.services.notification_service import WebhookNotificationService
    from scrypted_monitor.services.package_registry_service import PackageRegistryService
    from scrypted_monitor.services.storage_service import close_redis, create_config_store
    from scrypted_monitor.services.task_service import TaskNotFoundError, TaskService

    configure_logging(get_settings().log_level)

    host_bridge = HostBridgeClient()
    clients = [host_bridge, HomeAssistantService(), PackageRegistryService(), WebhookNotificationService()]
    service = TaskService(
        store=await create_config_store(),
        registry=host_bridge,
        diagnostics=host_bridge,
        home_assistant=clients[1],
        package_registry=clients[2],
        notifier=clients[3],
        host=host_bridge,
    )

    try:
        report = await service.run_task_now(task_name)
    except TaskNotFoundError:
        print(f"Task '{task_name}' is not configured", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Task '{task_name}' failed: {e}", file=sys.stderr)
        return 2
    finally:
        for client in clients:
            await client.close()
        await close_redis()

    print(report.message or "(empty report)")
    if report.force_stop:
        print("Notification suppressed: nothing to report")
    return 0


def main() -> int:
    load_dotenv()
    args = parse_args()

    if args.run_task:
        return asyncio.run(run_once(args.run_task))

    import uvicorn

    uvicorn.run("scrypted_monitor.main:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
