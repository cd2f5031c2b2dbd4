import pytest

from fedora_optimizer.retry import RetryPolicy, retry_operation


class Flaky:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.calls > self.failures


@pytest.mark.parametrize(
    "failures, expected_sleeps",
    [
        (0, []),
        (1, [5.0]),
        (2, [5.0, 10.0]),
    ],
)
def test_succeeds_after_k_failures(failures, expected_sleeps):
    sleeps = []
    op = Flaky(failures)

    assert retry_operation(op, RetryPolicy(), sleep=sleeps.append)
    assert op.calls == failures + 1
    assert sleeps == expected_sleeps


def test_delays_are_capped():
    sleeps = []
    policy = RetryPolicy(max_attempts=5, base_delay=5.0, max_delay=8.0)

    assert retry_operation(Flaky(3), policy, sleep=sleeps.append)
    assert sleeps == [5.0, 8.0, 8.0]


def test_always_failing_operation_stops_at_max_attempts():
    sleeps = []
    op = Flaky(failures=100)

    assert retry_operation(op, RetryPolicy(), sleep=sleeps.append) is False
    assert op.calls == 3
    # no wait after the final attempt
    assert sleeps == [5.0, 10.0]


def test_delay_for():
    policy = RetryPolicy(base_delay=5.0, max_delay=60.0)
    assert [policy.delay_for(n) for n in range(1, 6)] == [5.0, 10.0, 20.0, 40.0, 60.0]
