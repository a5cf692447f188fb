import pytest

from recyclify.utils.metrics import (MetricsEstimator, average_confidence, estimate_metrics,
                                     smooth_fps)

from conftest import make_classified


def test_average_confidence_empty_is_zero():
    assert average_confidence([]) == 0


def test_average_confidence_mean():
    detections = [make_classified("cup", 0.6, True), make_classified("tv", 0.8, False)]
    assert average_confidence(detections) == pytest.approx(0.7)


def test_smoothed_fps_recurrence():
    assert smooth_fps(30, 60) == pytest.approx(39)


def test_instantaneous_fps_from_delta():
    metrics = estimate_metrics(30, 1000 / 60, [])
    assert metrics.instantaneous_fps == pytest.approx(60)
    assert metrics.smoothed_fps == pytest.approx(39)


@pytest.mark.parametrize("delta_ms", [0, 0.5, -3])
def test_frame_delta_floor_of_one_millisecond(delta_ms):
    assert estimate_metrics(0, delta_ms, []).instantaneous_fps == pytest.approx(1000)


def test_counts_for_current_frame():
    detections = [
        make_classified("cup", 0.9, True),
        make_classified("bottle", 0.7, True),
        make_classified("tv", 0.5, False),
    ]

    metrics = estimate_metrics(0, 33, detections)

    assert metrics.recyclable_count == 2
    assert metrics.non_recyclable_count == 1
    assert metrics.total_count == 3
    assert metrics.average_confidence == pytest.approx(0.7)


def test_empty_frame_event():
    event = estimate_metrics(0, 16, []).to_event()

    assert event["counts"] == {"recyclable": 0, "non": 0, "total": 0}
    assert event["avgOverall"] == 0


def test_event_shape():
    metrics = estimate_metrics(0, 50, [make_classified("bottle", 0.9, True)])
    event = metrics.to_event()

    assert event["counts"] == {"recyclable": 1, "non": 0, "total": 1}
    assert event["avgOverall"] == pytest.approx(0.9)
    assert event["fps"] == pytest.approx(20)


def test_estimator_carries_smoothed_fps_only():
    estimator = MetricsEstimator(initial_fps=30)

    first = estimator.update(1000 / 60, [make_classified("cup", 0.8, True)])
    second = estimator.update(1000 / 60, [])

    assert first.smoothed_fps == pytest.approx(39)
    assert second.smoothed_fps == pytest.approx(39 * 0.7 + 60 * 0.3)
    assert second.total_count == 0
    assert estimator.smoothed_fps == pytest.approx(second.smoothed_fps)
