"""Marketplace Load Testing: Locust entry point.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Mixed workload only:
    locust -f loadtests/locustfile.py MixedWorkloadUser

    # Contention on one delivery slot:
    locust -f loadtests/locustfile.py HotSlotUser --headless -u 100 -r 20 -t 120s
"""

import logging
import time

from locust import events

from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.contention import HotSlotUser, hot_slot_figures  # noqa: F401
from loadtests.scenarios.mixed import MixedWorkloadUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Report the hot slot's figures and flag an oversold slot."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    slot = hot_slot_figures(environment.host) if environment.host else None
    if slot is None:
        return
    print(f"[LOADTEST] Hot slot reserved {slot['reserved']} of {slot['max_capacity']}")
    if not 0 <= slot["reserved"] <= slot["max_capacity"]:
        logger.error("[LOADTEST] Hot slot oversold: %s", slot)
        environment.process_exit_code = 1
