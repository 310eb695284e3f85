"""
Timezone normalizer tests - civil dates and times in the operating zone
"""
import time
from datetime import date, datetime

import pytest
import pytz

from utils.timezone import TimezoneNormalizer, format_local_time


@pytest.fixture
def normalizer():
    return TimezoneNormalizer('Asia/Jerusalem')


class TestToCivil:

    @pytest.mark.timezone
    def test_utc_instant_in_winter(self, normalizer):
        value = datetime(2025, 3, 10, 6, 30, tzinfo=pytz.UTC)
        assert normalizer.to_civil(value) == ('2025-03-10', '08:30:00')

    @pytest.mark.timezone
    def test_utc_instant_in_summer_crosses_midnight(self, normalizer):
        value = datetime(2025, 7, 1, 21, 30, tzinfo=pytz.UTC)
        assert normalizer.to_civil(value) == ('2025-07-02', '00:30:00')

    @pytest.mark.timezone
    def test_other_zone_is_converted(self, normalizer):
        value = pytz.timezone('America/New_York').localize(datetime(2025, 3, 10, 9, 0))
        # 09:00 EDT == 13:00 UTC == 15:00 in Jerusalem
        assert normalizer.to_civil(value) == ('2025-03-10', '15:00:00')

    @pytest.mark.timezone
    def test_naive_value_is_floating_local_time(self, normalizer):
        assert normalizer.to_civil(datetime(2025, 3, 10, 9, 0)) == ('2025-03-10', '09:00:00')

    @pytest.mark.timezone
    def test_bare_date_is_local_midnight(self, normalizer):
        assert normalizer.to_civil(date(2025, 3, 10)) == ('2025-03-10', '00:00:00')
        assert normalizer.civil_date(date(2025, 3, 10)) == '2025-03-10'

    @pytest.mark.timezone
    def test_to_local_naive_drops_tzinfo(self, normalizer):
        local = normalizer.to_local_naive(datetime(2025, 3, 10, 6, 30, tzinfo=pytz.UTC))
        assert local == datetime(2025, 3, 10, 8, 30)
        assert local.tzinfo is None


class TestToday:

    @pytest.mark.timezone
    def test_today_uses_operating_zone(self, normalizer):
        # 22:30 UTC is already the next day in Jerusalem
        now = datetime(2025, 3, 10, 22, 30, tzinfo=pytz.UTC)
        assert normalizer.today(now) == '2025-03-11'

    @pytest.mark.timezone
    def test_naive_now_is_treated_as_utc(self, normalizer):
        assert normalizer.today(datetime(2025, 3, 10, 22, 30)) == '2025-03-11'

    @pytest.mark.timezone
    def test_today_defaults_to_current_instant(self, normalizer):
        assert normalizer.today() == normalizer.now().strftime('%Y-%m-%d')


class TestHostTimezoneInvariance:

    @pytest.mark.timezone
    @pytest.mark.skipif(not hasattr(time, 'tzset'), reason="tzset not available on this platform")
    @pytest.mark.parametrize("host_tz", ['UTC', 'America/Los_Angeles', 'Asia/Tokyo'])
    def test_results_do_not_depend_on_host_zone(self, monkeypatch, normalizer, host_tz):
        monkeypatch.setenv('TZ', host_tz)
        time.tzset()
        try:
            assert normalizer.to_civil(datetime(2025, 3, 10, 6, 30, tzinfo=pytz.UTC)) == ('2025-03-10', '08:30:00')
            assert normalizer.to_civil(datetime(2025, 3, 10, 9, 0)) == ('2025-03-10', '09:00:00')
            assert normalizer.today(datetime(2025, 3, 10, 22, 30, tzinfo=pytz.UTC)) == '2025-03-11'
        finally:
            monkeypatch.undo()
            time.tzset()


class TestFormatting:

    @pytest.mark.timezone
    def test_format_local_time(self):
        value = datetime(2025, 3, 10, 6, 30, tzinfo=pytz.UTC)
        assert format_local_time(value, 'Asia/Jerusalem') == 'Mar 10, 2025 at 08:30 IST'

    @pytest.mark.timezone
    def test_format_none(self):
        assert format_local_time(None) == 'Never'
