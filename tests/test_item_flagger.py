"""
Tests for the Item Flagger
"""

import pytest

from conftest import at


def objects(pairs, seconds=0):
    from proctorcore.proctor.models import ObjectObservation
    return ObjectObservation.from_pairs(pairs, observed_at=at(seconds))


class TestItemFlagger:
    """Tests for prohibited item flagging"""

    def test_initialization(self, recorder):
        """Test flagger uses the configured defaults"""
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder)
        assert flagger.prohibited_items == {"phone", "cell phone", "book", "laptop"}
        assert flagger.confidence_threshold == 0.6

    def test_flags_prohibited_item(self, recorder):
        from proctorcore.proctor.detectors import ItemFlagger
        from proctorcore.proctor.models import EventKind

        flagger = ItemFlagger(emit=recorder)
        flagged = flagger.observe(objects([("phone", 0.9)], seconds=3))

        assert flagged == ["phone"]
        assert recorder.kinds() == [EventKind.PROHIBITED_ITEM]
        assert recorder.calls[0]["label"] == "phone"
        assert recorder.calls[0]["occurred_at"] == at(3)

    def test_threshold_is_strict(self, recorder):
        """Confidence equal to the threshold does not qualify"""
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder)
        assert flagger.observe(objects([("book", 0.6)])) == []
        assert flagger.observe(objects([("book", 0.61)])) == ["book"]

    def test_ignores_allowed_items(self, recorder):
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder)
        assert flagger.observe(objects([("cup", 0.99), ("person", 0.95)])) == []
        assert recorder.calls == []

    def test_labels_normalized(self, recorder):
        """Label matching ignores case and surrounding whitespace"""
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder)
        assert flagger.observe(objects([(" Cell Phone ", 0.8)])) == ["cell phone"]

    def test_one_event_per_detection(self, recorder):
        """Two qualifying detections in one tick give two events"""
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder)
        flagged = flagger.observe(objects([("phone", 0.9), ("cup", 0.9), ("laptop", 0.7)]))

        assert flagged == ["phone", "laptop"]
        assert len(recorder.calls) == 2

    def test_level_triggered(self, recorder):
        """An item seen on N ticks is flagged N times"""
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder)
        for tick in range(3):
            flagger.observe(objects([("phone", 0.9)], seconds=tick * 2))

        assert len(recorder.calls) == 3
        assert flagger.get_metrics()["flagged"] == 3

    def test_custom_policy(self, recorder):
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder, prohibited_items=["Headphones"], confidence_threshold=0.3)

        assert flagger.observe(objects([("headphones", 0.4), ("phone", 0.9)])) == ["headphones"]

    @pytest.mark.parametrize("pairs, issue", [
        ([("phone", 1.5)], "detection[0]:confidence_out_of_range"),
        ([("phone", -0.1)], "detection[0]:confidence_out_of_range"),
        ([("", 0.9)], "detection[0]:empty_label"),
        ([("phone", 0.9), ("book", "high")], "detection[1]:confidence_not_number"),
        ([("phone", float("nan"))], "detection[0]:confidence_out_of_range"),
    ])
    def test_malformed_rejected(self, recorder, pairs, issue):
        """One bad detection rejects the whole observation"""
        from proctorcore.proctor.detectors import ItemFlagger
        from proctorcore.proctor.errors import InvalidObservationError

        flagger = ItemFlagger(emit=recorder)

        with pytest.raises(InvalidObservationError) as excinfo:
            flagger.observe(objects(pairs))

        assert issue in excinfo.value.issues
        assert recorder.calls == []
        assert flagger.get_metrics()["rejected"] == 1

    def test_empty_detections(self, recorder):
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder)
        assert flagger.observe(objects([])) == []

    def test_closed_flagger_ignores_input(self, recorder):
        from proctorcore.proctor.detectors import ItemFlagger

        flagger = ItemFlagger(emit=recorder)
        flagger.close()

        assert flagger.observe(objects([("phone", 0.9)])) == []
        assert recorder.calls == []
