import asyncio

import pytest

from recyclify.utils.metrics import estimate_metrics
from recyclify.utils.stats_publisher import StatsPublisher

from conftest import make_classified


def sample_metrics(total=1):
    return estimate_metrics(0, 33, [make_classified("cup", 0.8, True)] * total)


def test_publish_reaches_every_subscriber():
    publisher = StatsPublisher()
    first, second = [], []
    publisher.subscribe(first.append)
    publisher.subscribe(second.append)

    publisher.publish(sample_metrics())

    assert len(first) == len(second) == 1
    assert first[0]["counts"]["total"] == 1


def test_publish_without_subscribers_is_a_noop():
    publisher = StatsPublisher()
    publisher.publish(sample_metrics())
    assert publisher.published_count == 1


def test_unsubscribe():
    publisher = StatsPublisher()
    received = []
    unsubscribe = publisher.subscribe(received.append)

    unsubscribe()
    publisher.publish(sample_metrics())

    assert received == []
    assert publisher.subscriber_count == 0


def test_failing_subscriber_does_not_block_others():
    publisher = StatsPublisher()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    publisher.subscribe(broken)
    publisher.subscribe(received.append)

    publisher.publish(sample_metrics())

    assert len(received) == 1


def test_full_queue_drops_new_events():
    async def scenario():
        publisher = StatsPublisher()
        queue = publisher.open_queue(maxsize=1)

        publisher.publish(sample_metrics(total=1))
        publisher.publish(sample_metrics(total=2))

        assert queue.qsize() == 1
        event = queue.get_nowait()
        return publisher, event

    publisher, event = asyncio.run(scenario())

    assert event["counts"]["total"] == 1
    assert publisher.dropped_count == 1


def test_closed_queue_stops_receiving():
    async def scenario():
        publisher = StatsPublisher()
        queue = publisher.open_queue()
        publisher.close_queue(queue)
        publisher.publish(sample_metrics())
        return queue.qsize()

    assert asyncio.run(scenario()) == 0


def test_unbounded_queue_rejected():
    with pytest.raises(ValueError):
        StatsPublisher().open_queue(maxsize=0)
