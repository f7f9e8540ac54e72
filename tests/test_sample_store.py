"""Sample store capacity and snapshot tests."""
import pytest

from attention_backend.layers.sample_store import SampleStore
from attention_backend.types import HeadPose, TrackingSample


def _sample(i: int) -> TrackingSample:
    return TrackingSample(timestamp=1_700_000_000 + i, head_pose=HeadPose(yaw=i, pitch=0), is_looking_at_screen=True)


def test_capacity_keeps_most_recent_samples_in_order():
    store = SampleStore()
    for i in range(1001):
        store.append(_sample(i))

    snapshot = store.export_all()
    assert len(store) == 1000
    assert snapshot[0].head_pose.yaw == 1
    assert snapshot[-1].head_pose.yaw == 1000
    assert [s.head_pose.yaw for s in snapshot] == list(range(1, 1001))


def test_append_returns_count():
    store = SampleStore(capacity=2)
    assert store.append(_sample(0)) == 1
    assert store.append(_sample(1)) == 2
    assert store.append(_sample(2)) == 2


def test_export_does_not_clear_and_is_immutable():
    store = SampleStore(capacity=5)
    store.append(_sample(0))

    snapshot = store.export_all()
    store.append(_sample(1))

    assert isinstance(snapshot, tuple)
    assert len(snapshot) == 1
    assert len(store) == 2
    assert store.latest().head_pose.yaw == 1


def test_clear_empties_store():
    store = SampleStore(capacity=5)
    store.append(_sample(0))
    store.clear()

    assert len(store) == 0
    assert store.latest() is None
    assert store.to_json_list() == []


def test_json_export_format():
    store = SampleStore()
    store.append(TrackingSample(timestamp=0.0, head_pose=HeadPose(yaw=1.5, pitch=-2.0), is_looking_at_screen=False))

    assert store.to_json_list() == [{
        "timestamp": "1970-01-01T00:00:00.000Z",
        "headPose": {"yaw": 1.5, "pitch": -2.0, "roll": 0.0},
        "eyeDirection": None,
        "isLookingAtScreen": False,
    }]


@pytest.mark.parametrize("capacity", [0, -1])
def test_invalid_capacity_rejected(capacity):
    with pytest.raises(ValueError):
        SampleStore(capacity=capacity)
