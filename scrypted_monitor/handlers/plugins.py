"""Plugin handlers: restart, update and runtime status report."""

from typing import Dict, List, Optional

import structlog

from scrypted_monitor.handlers.context import ExecutionContext
from scrypted_monitor.handlers.formatting import DIVIDER, error_line, render_section
from scrypted_monitor.models.registry import DeviceInfo, PluginStats, StatEntry
from scrypted_monitor.models.task import (
    DeferredAction,
    DeferredActionKind,
    ExecutionReport,
    Task,
)
from scrypted_monitor.services.package_registry_service import is_newer, select_version

logger = structlog.get_logger(__name__)


async def run_restart_plugins(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    """Restart each plugin; restarting ourselves is deferred past the notification."""
    message = ""
    restart_self = False

    for plugin_id in task.plugins:
        name = plugin_id
        try:
            plugin = await ctx.registry.get_device(plugin_id)
            if plugin is None:
                message += f"[{plugin_id}]: Plugin not found\n"
                continue
            name = plugin.label
            logger.info("restarting_plugin", package=name)

            if name in ctx.self_package_names:
                restart_self = True
            else:
                await ctx.registry.restart_plugin(name)
            message += f"[{name}]: Restarted\n"
        except Exception as e:
            logger.warning("plugin_restart_failed", package=name, error=str(e))
            message += error_line(name, e)

    deferred = None
    if restart_self:
        deferred = DeferredAction(
            kind=DeferredActionKind.RESTART_SELF,
            description="Restart the monitor plugin",
        )
    return ExecutionReport(message=message, deferred_action=deferred)


async def _check_plugin(
    plugin: DeviceInfo, ctx: ExecutionContext, beta: bool
) -> tuple[Optional[str], bool]:
    """Return (version to move to, whether registry data was found)."""
    versions = await ctx.package_registry.get_versions(plugin.label)
    if not versions:
        logger.info("plugin_versions_not_found", package=plugin.label)
        return None, False

    candidate = select_version(versions, beta=beta)
    if candidate is None:
        return None, False

    if plugin.version and not is_newer(candidate.version, plugin.version):
        return None, True
    return candidate.version, True


async def run_update_plugins(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    """Install newer versions of the selected plugins and scan the others.

    Plugins outside the selection are only reported, never installed.
    """
    message = ""

    for plugin_id in task.plugins:
        name = plugin_id
        try:
            plugin = await ctx.registry.get_device(plugin_id)
            if plugin is None:
                message += f"[{plugin_id}]: Plugin not found\n"
                continue
            name = plugin.label
            logger.info("updating_plugin", package=name, version=plugin.version)

            new_version, found = await _check_plugin(plugin, ctx, task.beta)
            if not found:
                message += f"[{name}]: No data found\n"
            elif new_version:
                await ctx.registry.install_version(name, new_version)
                logger.info("plugin_updated", package=name, version=new_version)
                message += f"[{name}]: Updated {plugin.version} -> {new_version}\n"
            else:
                message += f"[{name}]: Already on latest version {plugin.version}\n"
        except Exception as e:
            logger.warning("plugin_update_failed", package=name, error=str(e))
            message += error_line(name, e)

    if task.check_all_plugins:
        try:
            plugins = await ctx.registry.list_plugins()
        except Exception as e:
            logger.warning("plugin_list_failed", error=str(e))
            return ExecutionReport(message=message + error_line("Other plugins", e))

        others = [p for p in plugins if p.id not in task.plugins]
        logger.info("checking_other_plugins", packages=[p.label for p in others])

        some_outdated = False
        for plugin in others:
            try:
                new_version, _ = await _check_plugin(plugin, ctx, task.beta)
            except Exception as e:
                logger.warning("plugin_check_failed", package=plugin.label, error=str(e))
                message += error_line(plugin.label, e)
                continue
            if new_version:
                some_outdated = True
                message += f"[{plugin.label}]: New version available {new_version}\n"

        if not some_outdated:
            message += "\nAll the other plugins are on the latest version\n"

    return ExecutionReport(message=message)


def _top(entries: List[StatEntry], max_stats: int) -> List[StatEntry]:
    """Drop empty counters, sort descending and cap."""
    kept = [entry for entry in entries if entry.count]
    kept.sort(key=lambda entry: entry.count, reverse=True)
    return kept[:max_stats]


async def collect_plugin_stats(ctx: ExecutionContext, max_stats: int) -> PluginStats:
    rpc_objects: List[StatEntry] = []
    pending_results: List[StatEntry] = []
    connections: List[StatEntry] = []

    for plugin in await ctx.registry.list_plugins():
        try:
            info = await ctx.registry.get_plugin_runtime(plugin.label)
        except Exception as e:
            logger.warning("plugin_runtime_failed", package=plugin.label, error=str(e))
            continue
        if info is None:
            continue
        rpc_objects.append(StatEntry(name=plugin.label, count=info.rpc_objects))
        pending_results.append(StatEntry(name=plugin.label, count=info.pending_results))
        connections.append(StatEntry(name=plugin.label, count=info.clients_count))

    stats = PluginStats(
        rpc_objects=_top(rpc_objects, max_stats),
        pending_results=_top(pending_results, max_stats),
        connections=_top(connections, max_stats),
    )

    try:
        workers = await ctx.registry.get_cluster_workers()
    except Exception as e:
        logger.warning("cluster_workers_failed", error=str(e))
        workers = None
    if workers is not None:
        fork_counts: Dict[str, int] = {}
        for worker in workers:
            for fork in worker.forks:
                fork_counts[fork.id] = fork_counts.get(fork.id, 0) + 1

        cluster_devices: List[StatEntry] = []
        for device_id, count in fork_counts.items():
            try:
                device = await ctx.registry.get_device(device_id)
            except Exception as e:
                logger.warning("cluster_device_lookup_failed", device=device_id, error=str(e))
                device = None
            name = device.name if device is not None else "Unknown Device"
            cluster_devices.append(StatEntry(name=name, count=count))

        stats.workers = _top(
            [StatEntry(name=w.name, count=len(w.forks)) for w in workers], max_stats
        )
        stats.cluster_devices = _top(cluster_devices, max_stats)

    try:
        benchmark = await ctx.registry.run_benchmark()
    except Exception as e:
        logger.warning("benchmark_failed", error=str(e))
        benchmark = None
    if benchmark is not None:
        stats.benchmark = _top(benchmark, max_stats)

    return stats


def render_plugin_stats(stats: PluginStats) -> str:
    sections = [
        render_section("RPC Objects", stats.rpc_objects),
        render_section("Pending Results", stats.pending_results),
        render_section("Connections", stats.connections),
    ]
    if stats.workers is not None:
        sections.append(render_section("Workers", stats.workers))
    if stats.cluster_devices is not None:
        sections.append(render_section("Devices", stats.cluster_devices))
    if stats.benchmark is not None:
        sections.append(render_section("Benchmark", stats.benchmark))
    return DIVIDER.join(sections)


async def run_report_plugins_status(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    try:
        stats = await collect_plugin_stats(ctx, task.max_stats)
    except Exception as e:
        logger.warning("plugin_stats_failed", error=str(e))
        return ExecutionReport(message=f"Unable to retrieve plugin stats: {e}\n")
    logger.info("plugin_stats_collected", stats=stats.model_dump())
    return ExecutionReport(message=render_plugin_stats(stats))
