import unittest
from datetime import datetime, timedelta, timezone

from healthtrack.context.aggregator import aggregate_history, round_half_up
from healthtrack.models import SymptomType
from healthtrack.tests.helpers import BASE_TIME, make_record


class RoundHalfUpTests(unittest.TestCase):
    def test_rounds_half_away_from_zero(self) -> None:
        self.assertEqual(round_half_up(2.345), 2.35)
        self.assertEqual(round_half_up(0.125), 0.13)
        self.assertEqual(round_half_up(2 / 3), 0.67)
        self.assertEqual(round_half_up(6.0), 6.0)


class AggregateHistoryTests(unittest.TestCase):
    def test_empty_history(self) -> None:
        result = aggregate_history([])

        self.assertEqual(result.total, 0)
        self.assertIsNone(result.avg_severity)
        self.assertEqual(result.timeline, [])
        self.assertEqual(
            result.counts_by_type,
            {"physical": 0, "mental": 0, "emotional": 0, "other": 0},
        )
        self.assertIsNone(result.first_record_date)
        self.assertIsNone(result.last_record_date)

    def test_same_day_records_share_one_bucket(self) -> None:
        records = [
            make_record(1, severity=4),
            make_record(2, severity=6),
            make_record(3, severity=8),
        ]

        result = aggregate_history(records)

        self.assertEqual(len(result.timeline), 1)
        bucket = result.timeline[0]
        self.assertEqual(bucket.date, "2024-03-01")
        self.assertEqual(bucket.count, 3)
        self.assertEqual(bucket.avg_severity, 6.0)
        self.assertEqual(result.avg_severity, 6.0)
        self.assertEqual(result.total, 3)

    def test_counts_map_unknown_types_to_other(self) -> None:
        records = [
            make_record(1, type="physical"),
            make_record(2, type="emotional"),
            make_record(3, type="cardiac"),
            make_record(4, type="Mental"),
        ]

        result = aggregate_history(records)

        self.assertEqual(
            result.counts_by_type,
            {"physical": 1, "mental": 1, "emotional": 1, "other": 1},
        )
        self.assertEqual(records[2].type, SymptomType.OTHER)

    def test_missing_severity_counts_toward_total_only(self) -> None:
        records = [make_record(1, severity=9), make_record(2, severity=None)]

        result = aggregate_history(records)

        self.assertEqual(result.total, 2)
        self.assertEqual(result.avg_severity, 4.5)
        self.assertEqual(result.timeline[0].avg_severity, 4.5)

    def test_timeline_sorted_ascending_with_per_day_average(self) -> None:
        day = timedelta(days=1)
        records = [
            make_record(1, severity=3, at=BASE_TIME + 2 * day),
            make_record(2, severity=5, at=BASE_TIME),
            make_record(3, severity=6, at=BASE_TIME + 2 * day),
            make_record(4, severity=2, at=BASE_TIME + day),
            make_record(5, severity=7, at=BASE_TIME + 2 * day),
        ]

        result = aggregate_history(records)

        dates = [b.date for b in result.timeline]
        self.assertEqual(dates, sorted(dates))
        self.assertEqual(dates, ["2024-03-01", "2024-03-02", "2024-03-03"])
        last = result.timeline[-1]
        self.assertEqual(last.count, 3)
        self.assertEqual(last.avg_severity, round_half_up((3 + 6 + 7) / 3))
        self.assertEqual(last.avg_severity, 5.33)

    def test_days_are_utc_calendar_days(self) -> None:
        # 23:30 at UTC-05:00 is already the next day in UTC.
        eastern = timezone(timedelta(hours=-5))
        record = make_record(1, at=datetime(2024, 3, 1, 23, 30, tzinfo=eastern))

        result = aggregate_history([record])

        self.assertEqual(result.timeline[0].date, "2024-03-02")

    def test_first_and_last_follow_input_order(self) -> None:
        later = make_record(1, at=BASE_TIME + timedelta(days=5))
        earlier = make_record(2, at=BASE_TIME)

        result = aggregate_history([later, earlier])

        self.assertEqual(result.first_record_date, later.created_at)
        self.assertEqual(result.last_record_date, earlier.created_at)


if __name__ == "__main__":
    unittest.main()
