"""Mixed marketplace workload scenario.

Combines the producer, booking, checkout and order journeys with weights
that model a normal trading day. This is the recommended scenario for a
load baseline.
"""

from locust import HttpUser, between

from loadtests.scenarios.journeys import (
    BookingToCheckoutJourney,
    OrderLifecycleJourney,
    ProducerSlotJourney,
)


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload.

    - Producers opening and resizing slots: least frequent
    - Clients booking and checking out: most common
    - Orders moving through fulfilment, a quarter of them cancelled
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        ProducerSlotJourney: 2,
        BookingToCheckoutJourney: 6,
        OrderLifecycleJourney: 4,
    }
