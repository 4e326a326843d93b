import pytest

from nreporting.hms import HMSNumberFormat, format_hms, parse_timestamp
from nreporting.measurement import Measurement, Quantity

HOURS = 729
MINUTES = 42
SECONDS = 9
TIMESTAMP = (HOURS * 3600 + MINUTES * 60 + SECONDS) * 1000


class TestHMS:
    def test_default_format(self):
        assert format_hms(123456000) == "34:17:36"

    def test_pads_minutes_and_seconds(self):
        assert format_hms(TIMESTAMP) == "729:42:09"

    def test_zero(self):
        assert format_hms(0) == "0:00:00"

    def test_float_is_truncated(self):
        assert format_hms(61999.9) == "0:01:01"

    def test_pattern(self):
        assert format_hms(TIMESTAMP, "H h M m S s") == "729 h 42 m 09 s"

    def test_parse(self):
        assert parse_timestamp("34:17:36") == 123456000

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_timestamp("12:ab:00")
        with pytest.raises(ValueError, match="H:M:S"):
            parse_timestamp("12:00")

    def test_format_object(self):
        fmt = HMSNumberFormat("H-M-S")
        assert fmt.format(3723000) == "1-02-03"
        assert fmt.parse("1:02:03") == 3723000


class TestQuantity:
    def test_str(self):
        assert str(Quantity(1111.11, "it/s")) == "1111.11 it/s"

    def test_equality(self):
        assert Quantity(1.0, "ms") == Quantity(1.0, "ms")
        assert Quantity(1.0, "ms") != Quantity(1.0, "s")


class TestMeasurement:
    def test_str(self):
        # iterations are indexed from 0 and reported from 1
        m = Measurement(15, TIMESTAMP, 12344)
        m.set("18523.269 it/s")
        m.set("257.58 it/s", name="current")
        m.set("300.25 it/s", name="average")

        assert str(m) == (
            "[729:42:09][12345 iterations][15%] [18523.269 it/s] "
            "[current => 257.58 it/s] [average => 300.25 it/s]"
        )

    def test_str_with_quantities(self):
        m = Measurement(42, 123456000, 12344)
        m.set(Quantity(1111.11, "it/s"))
        m.set(Quantity(222.22, "ms"), name="another")
        assert str(m) == "[34:17:36][12345 iterations][42%] [1111.11 it/s] [another => 222.22 ms]"

    def test_get_missing(self):
        m = Measurement(0, 0, 0)
        assert m.get() is None
        assert m.get("nope") is None
        assert str(m) == "[0:00:00][1 iterations][0%] [None]"

    def test_get_all_is_read_only(self):
        m = Measurement(0, 0, 0)
        m.set(1)
        results = m.get_all()
        assert dict(results) == {Measurement.DEFAULT_RESULT: 1}
        with pytest.raises(TypeError):
            results["x"] = 2
