"""Tests for snapshot models and record parsing."""

from datetime import datetime, timezone

import pytest

from app.oi.models import UNKNOWN_TIME, LegQuote, Snapshot, parse_timestamp


class TestParseTimestamp:
    """Unit tests for parse_timestamp."""

    def test_iso_with_offset(self):
        """Test that an ISO string with an offset keeps its offset."""
        parsed = parse_timestamp("2024-03-05T10:15:00+05:30")
        assert parsed.isoformat() == "2024-03-05T10:15:00+05:30"

    def test_iso_with_z_suffix(self):
        """Test that a trailing Z parses as UTC."""
        parsed = parse_timestamp("2024-03-05T04:45:00Z")
        assert parsed == datetime(2024, 3, 5, 4, 45, tzinfo=timezone.utc)

    def test_naive_uses_given_zone(self, ist):
        """Test that naive values are placed in the supplied zone."""
        parsed = parse_timestamp("2024-03-05 10:15:00", tz=ist)
        assert parsed.tzinfo is ist
        assert parsed.hour == 10

    def test_epoch_milliseconds(self):
        """Test numeric epoch milliseconds."""
        parsed = parse_timestamp(1_709_613_900_000, tz=timezone.utc)
        assert parsed == datetime(2024, 3, 5, 4, 45, tzinfo=timezone.utc)

    def test_datetime_passthrough(self):
        """Test that aware datetimes are returned unchanged."""
        value = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
        assert parse_timestamp(value) == value

    @pytest.mark.parametrize("value", ["not a date", "", None, {"a": 1}, True])
    def test_malformed_returns_none(self, value):
        """Test that unparsable values become None instead of raising."""
        assert parse_timestamp(value) is None


class TestLegQuote:
    """Unit tests for LegQuote parsing."""

    def test_missing_fields_default(self):
        """Test that absent counts are 0 and absent IV/LTP are None."""
        quote = LegQuote.from_dict({})
        assert quote.open_interest == 0
        assert quote.total_traded_volume == 0
        assert quote.implied_volatility is None
        assert quote.last_price is None
        assert quote.diff_open_interest is None

    def test_full_quote(self):
        """Test parsing every field."""
        quote = LegQuote.from_dict(
            {
                "openInterest": 1200,
                "totalTradedVolume": 5400,
                "impliedVolatility": 12.5,
                "lastPrice": 101.35,
                "diffOpenInterest": -40,
                "diffTotalTradedVolume": 300,
            }
        )
        assert quote.open_interest == 1200
        assert quote.total_traded_volume == 5400
        assert quote.implied_volatility == 12.5
        assert quote.last_price == 101.35
        assert quote.diff_open_interest == -40
        assert quote.diff_total_traded_volume == 300

    def test_null_values(self):
        """Test that explicit nulls behave like absent fields."""
        quote = LegQuote.from_dict({"openInterest": None, "impliedVolatility": None})
        assert quote.open_interest == 0
        assert quote.implied_volatility is None

    def test_to_dict_uses_upstream_names(self):
        """Test serialization back to upstream field names."""
        quote = LegQuote(open_interest=10, implied_volatility=11.0)
        result = quote.to_dict()
        assert result["openInterest"] == 10
        assert result["impliedVolatility"] == 11.0
        assert result["lastPrice"] is None

    def test_non_mapping_leg_raises(self):
        with pytest.raises(ValueError):
            LegQuote.from_dict("n/a")

    def test_overflowing_count_is_zero(self):
        assert LegQuote.from_dict({"openInterest": float("inf")}).open_interest == 0


class TestSnapshot:
    """Unit tests for Snapshot.from_dict and accessors."""

    def test_from_record(self, record_factory, ist):
        """Test parsing a complete record."""
        raw = record_factory(
            "2024-03-05T10:15:00+05:30",
            spot=22012.5,
            chain={22000: {"CE": {"openInterest": 100}, "PE": {"openInterest": 200}}},
            nse_timestamp="05-Mar-2024 10:14:59",
            filtered=(5000, 6000),
            snapshot_id="abc123",
        )
        snap = Snapshot.from_dict(raw, tz=ist)

        assert snap.spot_price == 22012.5
        assert snap.nse_timestamp == "05-Mar-2024 10:14:59"
        assert snap.snapshot_id == "abc123"
        assert snap.filtered_ce_total_oi == 5000
        assert snap.filtered_pe_total_oi == 6000
        assert snap.open_interest(22000, "CE") == 100
        assert snap.open_interest(22000, "PE") == 200

    def test_empty_record_defaults(self):
        """Test that a bare record yields defaults, not errors."""
        snap = Snapshot.from_dict({"timestamp": "2024-03-05T10:15:00+05:30"})
        assert snap.spot_price == 0.0
        assert snap.strike_records == {}
        assert snap.nse_timestamp is None
        assert snap.filtered_ce_total_oi == 0

    def test_missing_strike_and_leg_are_zero(self, make_snapshot):
        """Test that a missing record or leg reads as 0 OI."""
        snap = make_snapshot("2024-03-05T10:15:00+05:30", chain={22000: {"CE": {"openInterest": 5}}})
        assert snap.leg(22000, "PE") is None
        assert snap.open_interest(22000, "PE") == 0
        assert snap.open_interest(22050, "CE") == 0

    def test_integer_and_float_strikes_match(self, make_snapshot):
        """Test that strike lookups work for int and float keys alike."""
        snap = make_snapshot("2024-03-05T10:15:00+05:30", chain={22000: {"CE": {"openInterest": 7}}})
        assert snap.open_interest(22000.0, "CE") == 7
        assert snap.open_interest(22000, "CE") == 7

    def test_duplicate_strike_keeps_first(self):
        """Test that at most one record per strike is kept."""
        raw = {
            "timestamp": "2024-03-05T10:15:00+05:30",
            "data": {
                "records": {
                    "data": [
                        {"strikePrice": 22000, "CE": {"openInterest": 1}},
                        {"strikePrice": 22000, "CE": {"openInterest": 2}},
                    ]
                }
            },
        }
        snap = Snapshot.from_dict(raw)
        assert len(snap.strike_records) == 1
        assert snap.open_interest(22000, "CE") == 1

    def test_malformed_timestamp_is_recoverable(self, make_snapshot):
        """Test that a bad timestamp keeps the snapshot with a placeholder label."""
        snap = make_snapshot("garbage")
        assert snap.timestamp is None
        assert snap.raw_timestamp == "garbage"
        assert snap.time_label == UNKNOWN_TIME
        assert snap.iso_timestamp is None

    def test_time_label(self, make_snapshot):
        """Test the HH:MM:SS display label."""
        snap = make_snapshot("2024-03-05T09:05:07+05:30")
        assert snap.time_label == "09:05:07"

    def test_non_mapping_record_raises(self):
        """Test that a structurally invalid record raises ValueError."""
        with pytest.raises(ValueError):
            Snapshot.from_dict(["not", "a", "record"])

    def test_bad_strike_price_raises(self):
        """Test that a strike entry without a numeric strikePrice raises ValueError."""
        raw = {"timestamp": "x", "data": {"records": {"data": [{"strikePrice": "abc"}]}}}
        with pytest.raises(ValueError):
            Snapshot.from_dict(raw)

    @pytest.mark.parametrize(
        "raw",
        [
            {"data": "oops"},
            {"data": {"records": ["not", "a", "mapping"]}},
            {"data": {"records": {"data": "abc"}}},
            {"data": {"records": {"data": 7}}},
            {"data": {"records": {"data": ["not-an-entry"]}}},
            {"data": {"records": {"data": [{"strikePrice": 22000, "CE": "n/a"}]}}},
            {"data": {"filtered": "none"}},
            {"data": {"filtered": {"CE": 5}}},
        ],
    )
    def test_wrongly_shaped_sections_raise_value_error(self, raw):
        """Test that nested sections of the wrong type raise ValueError, not AttributeError."""
        with pytest.raises(ValueError):
            Snapshot.from_dict(raw)

    def test_immutability(self, make_snapshot):
        """Test that snapshots are immutable."""
        snap = make_snapshot("2024-03-05T10:15:00+05:30")
        with pytest.raises(AttributeError):
            snap.spot_price = 1.0

    def test_identity_semantics(self, record_factory):
        """Test that equal contents still give distinct, hashable snapshots."""
        raw = record_factory("2024-03-05T10:15:00+05:30")
        a = Snapshot.from_dict(raw)
        b = Snapshot.from_dict(raw)
        assert a != b
        assert len({a, b}) == 2
