"""Tests for notification text generation."""

from goalalerts.engine.content import (
    GENERIC_REMINDER,
    deadline_content,
    format_number,
    milestone_content,
    reminder_content,
    streak_content,
    summary_content,
)


class TestMilestoneContent:
    def test_quarter(self):
        c = milestone_content("Run 100km", 25, 30.0, 100.0, "km")
        assert c.icon == "🌟"
        assert c.title == "25% Complete! 🌟"
        assert "30/100 km" in c.message
        assert '"Run 100km"' in c.message

    def test_complete_icon(self):
        assert milestone_content("G", 100, 100, 100, "km").icon == "🏆"

    def test_unknown_pct_default_icon(self):
        assert milestone_content("G", 40, 40, 100, "km").icon == "📈"


class TestDeadlineContent:
    def test_today(self):
        c = deadline_content("G", 0, 50, 100, "km")
        assert c.title == "⏰ Goal Deadline Today!"

    def test_tomorrow(self):
        assert deadline_content("G", 1, 50, 100, "km").title == "📅 Goal Ends Tomorrow"

    def test_few_days(self):
        assert deadline_content("G", 3, 50, 100, "km").title == "⚠️ 3 Days Left"

    def test_week(self):
        assert deadline_content("G", 7, 50, 100, "km").title == "📋 7 Days Remaining"

    def test_message_percent_rounded(self):
        c = deadline_content("Half", 3, 12.5, 20, "km")
        assert "63% complete" in c.message
        assert "(12.5/20 km)" in c.message

    def test_zero_target(self):
        assert "0% complete" in deadline_content("G", 3, 5, 0, "runs").message


class TestStreakContent:
    def test_singular(self):
        c = streak_content(1, "daily")
        assert c.title == "🔥 1 Day Streak!"
        assert "for 1 day." in c.message

    def test_plural_and_icon(self):
        c = streak_content(7, "daily")
        assert c.icon == "⚡"
        assert c.title == "⚡ 7 Days Streak!"

    def test_highest_level_not_exceeding(self):
        assert streak_content(20, "daily").icon == "💪"
        assert streak_content(365, "daily").icon == "🏆"

    def test_weekly_unit(self):
        assert "3 weeks" in streak_content(3, "weekly").message

    def test_goal_reference(self):
        assert 'Keep it up with "Marathon"!' in streak_content(3, "daily", "Marathon").message

    def test_no_goal_reference(self):
        assert "Keep it up" not in streak_content(3, "daily").message


class TestSummaryContent:
    def test_basic(self):
        c = summary_content("weekly", 1, 4, 62.4)
        assert c.title == "📊 Week Summary"
        assert c.message == "1/4 goals completed (25%). Average progress: 62%."

    def test_monthly_with_top(self):
        c = summary_content("monthly", 2, 3, 80, "10k")
        assert c.title == "📊 Month Summary"
        assert c.message.endswith('Top performer: "10k".')

    def test_no_goals(self):
        assert "(0%)" in summary_content("weekly", 0, 0, 0).message


class TestReminderContent:
    def test_known(self):
        assert reminder_content("missed_run").icon == "🏃‍♂️"

    def test_unknown_falls_back(self):
        assert reminder_content("stretch") == GENERIC_REMINDER


class TestFormatNumber:
    def test_whole(self):
        assert format_number(30.0) == "30"

    def test_fraction(self):
        assert format_number(12.3456) == "12.35"
