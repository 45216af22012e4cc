"""
Testes do cálculo de atraso
"""
from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase

from ticketing import overdue

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=dt_timezone.utc)


def ticket(hours_ago=0, minutes_ago=0, status='open', overdue_hours=24, overdue_enabled=True):
    return {
        'created_at': NOW - timedelta(hours=hours_ago, minutes=minutes_ago),
        'status': status,
        'overdue_hours': overdue_hours,
        'overdue_enabled': overdue_enabled,
    }


class IsOverdueTest(SimpleTestCase):

    def test_past_threshold(self):
        self.assertTrue(overdue.is_overdue(ticket(hours_ago=25), NOW))

    def test_threshold_is_inclusive(self):
        self.assertTrue(overdue.is_overdue(ticket(hours_ago=24), NOW))
        self.assertFalse(overdue.is_overdue(ticket(hours_ago=23, minutes_ago=59), NOW))

    def test_just_below_threshold_is_not_overdue(self):
        for hours in (1, 24, 36, 48):
            with self.subTest(hours=hours):
                data = ticket(overdue_hours=hours)
                data['created_at'] = NOW - timedelta(hours=hours) + timedelta(hours=0.01)
                self.assertFalse(overdue.is_overdue(data, NOW))
                self.assertTrue(overdue.is_overdue(ticket(hours_ago=hours, overdue_hours=hours), NOW))

    def test_terminal_status_never_overdue(self):
        self.assertFalse(overdue.is_overdue(ticket(hours_ago=100, status='resolved'), NOW))
        self.assertFalse(overdue.is_overdue(ticket(hours_ago=100, status='closed'), NOW))

    def test_disabled_never_overdue(self):
        self.assertFalse(overdue.is_overdue(ticket(hours_ago=100, overdue_enabled=False), NOW))

    def test_missing_enabled_defaults_to_true(self):
        data = ticket(hours_ago=30)
        del data['overdue_enabled']
        self.assertTrue(overdue.is_overdue(data, NOW))
        data['overdue_enabled'] = None
        self.assertTrue(overdue.is_overdue(data, NOW))

    def test_invalid_hours_fall_back_to_default(self):
        for value in (None, 0, -5, 'abc', True):
            with self.subTest(value=value):
                self.assertEqual(overdue.threshold_hours(ticket(overdue_hours=value)), 24)
                self.assertFalse(overdue.is_overdue(ticket(hours_ago=23, overdue_hours=value), NOW))
                self.assertTrue(overdue.is_overdue(ticket(hours_ago=24, overdue_hours=value), NOW))

    def test_custom_threshold(self):
        self.assertTrue(overdue.is_overdue(ticket(hours_ago=3, overdue_hours=2), NOW))
        self.assertFalse(overdue.is_overdue(ticket(hours_ago=30, overdue_hours=48), NOW))

    def test_future_created_at_counts_as_zero(self):
        data = ticket()
        data['created_at'] = NOW + timedelta(hours=5)
        self.assertEqual(overdue.elapsed_delta(data, NOW), timedelta(0))
        self.assertEqual(overdue.elapsed(data, NOW), '0h 0m')
        self.assertFalse(overdue.is_overdue(data, NOW))

    def test_naive_datetimes_are_utc(self):
        data = ticket()
        data['created_at'] = datetime(2024, 5, 9, 11, 0)
        self.assertTrue(overdue.is_overdue(data, NOW))

    def test_missing_created_at(self):
        self.assertFalse(overdue.is_overdue({'status': 'open'}, NOW))


class ElapsedLabelTest(SimpleTestCase):

    def test_hours_and_minutes_below_a_day(self):
        self.assertEqual(overdue.elapsed(ticket(hours_ago=1, minutes_ago=30), NOW), '1h 30m')
        self.assertEqual(overdue.elapsed(ticket(hours_ago=23, minutes_ago=59), NOW), '23h 59m')

    def test_days_and_hours_from_a_day(self):
        self.assertEqual(overdue.elapsed(ticket(hours_ago=24), NOW), '1d 0h')
        self.assertEqual(overdue.elapsed(ticket(hours_ago=25), NOW), '1d 1h')
        self.assertEqual(overdue.elapsed(ticket(hours_ago=50, minutes_ago=45), NOW), '2d 2h')

    def test_threshold_label(self):
        self.assertEqual(overdue.threshold_label(ticket(overdue_hours=24)), '1d')
        self.assertEqual(overdue.threshold_label(ticket(overdue_hours=48)), '2d')
        self.assertEqual(overdue.threshold_label(ticket(overdue_hours=36)), '36h')
        self.assertEqual(overdue.threshold_label(ticket(overdue_enabled=False)), '')

    def test_status_badge(self):
        badge = overdue.overdue_status(ticket(hours_ago=30), NOW)
        self.assertEqual(badge, {
            'overdue': True,
            'elapsed': '1d 6h',
            'threshold_label': '1d',
            'enabled': True,
            'label': 'Atrasado',
        })
        badge = overdue.overdue_status(ticket(hours_ago=2), NOW)
        self.assertFalse(badge['overdue'])
        self.assertEqual(badge['label'], '')
