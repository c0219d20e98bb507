import pytest

from customer_generator import Customer


class FixedDraws:
    """Uniform source that replays a fixed list of draws."""

    def __init__(self, draws):
        self.draws = list(draws)
        self.used = 0

    def random(self):
        value = self.draws[self.used]
        self.used += 1
        return value


def make_customer(customer_id, arrival_time, service_time, priority=1):
    return Customer(
        customer_id=customer_id,
        random_num=0.0,
        cp=0.0,
        inter_arrival=0.0,
        arrival_time=float(arrival_time),
        priority=priority,
        service_time=float(service_time),
        remaining_service_time=float(service_time),
        service_random_num=0.0,
    )


@pytest.fixture
def fixed_draws():
    return FixedDraws
