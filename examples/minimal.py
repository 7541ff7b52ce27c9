import asyncio
import os
import random

# Ensure we can import from healing
import sys
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from healing import SelfHealingEngine, FailureReport, ActionKind, ResourceFailure, TaskTimeout
from healing.logger import configure_logger

PROXIES = ["proxy-a", "proxy-b", "proxy-c"]

async def flaky_page_load(proxy: str):
    # Simulated task: proxy-a is dead, others time out now and then
    if proxy == "proxy-a":
        raise ResourceFailure("Proxy connection failed", resource_id=proxy)
    if random.random() < 0.4:
        raise TaskTimeout("Page load timeout")
    return "<html>ok</html>"

async def main():
    configure_logger()
    print("--- Self-Healing Engine Minimal Example ---")

    # 1. Initialize Engine with short delays for the demo
    engine = SelfHealingEngine(max_retries=4, base_backoff_ms=50, unit_restart_delay_ms=100,
                               resource_switch_delay_ms=20)
    engine.on("recovery:started", lambda p: print(f"  recovering: {p['action'].kind.value} (attempt {p['attempts']})"))

    proxy_iter = iter(PROXIES)
    proxy = next(proxy_iter)

    # 2. Task loop: report failures, follow the engine's decision
    while True:
        try:
            await flaky_page_load(proxy)
            print(f"Loaded page via {proxy}")
            break
        except Exception as e:
            report = FailureReport.from_exception(e, task_id="task-1", resource_id=proxy)
            action = engine.analyze_error(report)
            print(f"{report.category.value}: {report.message} -> {action.kind.value}")

            if action.kind in (ActionKind.ABORT, ActionKind.SKIP):
                print(f"Giving up: {action.reason}")
                break

            async def perform(a):
                nonlocal proxy
                if a.kind == ActionKind.SWITCH_RESOURCE:
                    proxy = next(proxy_iter)
                return True

            # A successful switch/restart only means the remedy ran; the next load decides.
            await engine.execute_recovery(report, action, perform)

    # 3. Inspect health
    stats = engine.get_stats()
    print(f"Recoveries: {stats.total_recoveries}, success rate {stats.success_rate:.0f}%")
    print(f"By action: {stats.by_action_kind}")

if __name__ == "__main__":
    asyncio.run(main())
