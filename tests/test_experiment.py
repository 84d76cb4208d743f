"""
Experiment entity: copying, derived accessors and wire shape.
"""

from datetime import datetime, timezone

from mlflowkit.experiments import (
    NAMESPACE_TAG,
    Experiment,
    LifecycleStage,
    Tag,
    Tags,
)


def _populated() -> Experiment:
    return Experiment(
        experiment_id="42",
        name="baseline",
        artifact_location="s3://bucket/42",
        creation_time=1_700_000_000,
        last_updated_time=1_700_000_500,
        lifecycle_stage=LifecycleStage.ACTIVE,
        tags=Tags([Tag("owner", "alice"), Tag(NAMESPACE_TAG, "team-a")]),
    )


class TestDeepCopy:

    def test_copy_equals_original(self):
        original = _populated()
        assert original.deep_copy() == original

    def test_copy_tags_are_independent(self):
        a = _populated()
        b = a.deep_copy()

        b.tags.set("owner", "bob")
        b.tags.set("extra", "1")

        assert a.tags.get("owner") == "alice"
        assert not a.tags.contains("extra")

    def test_deep_copy_into_overwrites_every_field(self):
        target = _populated()
        Experiment().deep_copy_into(target)
        assert target == Experiment()
        assert target.is_zero()

    def test_deep_copy_into_does_not_share_tag_objects(self):
        source = _populated()
        target = Experiment()
        source.deep_copy_into(target)

        target.tags[0].value = "mutated"
        assert source.tags[0].value == "alice"


class TestAccessors:

    def test_namespace_reads_and_writes_reserved_tag(self):
        exp = Experiment(name="x")
        assert exp.namespace == ""

        exp.namespace = "team-b"
        assert exp.tags.get(NAMESPACE_TAG) == "team-b"

        exp.namespace = "team-c"
        assert len(exp.tags) == 1

    def test_zero_timestamps_are_none(self):
        exp = Experiment()
        assert exp.creation_timestamp is None
        assert exp.last_updated_timestamp is None

    def test_timestamps_convert_epoch_seconds(self):
        exp = _populated()
        assert exp.creation_timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

        exp.last_updated_timestamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert exp.last_updated_time == 1_704_067_200

    def test_out_of_range_timestamp_is_none(self):
        exp = Experiment(creation_time=10**18, last_updated_time=-(10**18))
        assert exp.creation_timestamp is None
        assert exp.last_updated_timestamp is None

    def test_naive_datetimes_are_treated_as_utc(self):
        exp = Experiment()
        exp.creation_timestamp = datetime(2024, 1, 1)
        assert exp.creation_time == 1_704_067_200

    def test_lifecycle_stage_compares_to_wire_value(self):
        assert LifecycleStage.DELETED == "deleted"
        assert Experiment(lifecycle_stage="active") == Experiment(lifecycle_stage=LifecycleStage.ACTIVE)


class TestWireShape:

    def test_to_dict_omits_empty_fields(self):
        assert Experiment(name="only-name").to_dict() == {"name": "only-name"}

    def test_to_dict_full(self):
        payload = _populated().to_dict()
        assert list(payload) == [
            "experiment_id",
            "name",
            "artifact_location",
            "creation_time",
            "last_updated_time",
            "lifecycle_stage",
            "tags",
        ]
        assert payload["lifecycle_stage"] == "active"
        assert payload["tags"][1] == {"key": NAMESPACE_TAG, "value": "team-a"}

    def test_from_dict_passes_times_through(self):
        exp = Experiment.from_dict(
            {
                "experiment_id": "7",
                "name": "default/x",
                "creation_time": "1700000000123",
                "lifecycle_stage": "deleted",
            }
        )
        assert exp.creation_time == 1_700_000_000_123
        assert exp.last_updated_time == 0
        assert exp.lifecycle_stage == LifecycleStage.DELETED
        assert exp.tags == Tags()
