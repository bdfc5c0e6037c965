"""
Default milestone catalog.

Static, versioned with the app. Entries are grouped by tag and ordered
within a tag by `order_index`. Bump CATALOG_VERSION whenever an entry is
added, removed or re-thresholded.
"""

from typing import List, Optional

from harmony_engine.models.milestone import MilestoneDefinition

CATALOG_VERSION = "2024.3"


def _m(
    id: str,
    tag: str,
    name: str,
    description: str,
    threshold: int,
    threshold_type: str,
    rarity: str,
    order_index: int,
    metric: Optional[str] = None,
    window_days: Optional[int] = None,
) -> MilestoneDefinition:
    return MilestoneDefinition(
        id=id,
        tag=tag,
        name=name,
        description=description,
        threshold=threshold,
        threshold_type=threshold_type,
        rarity=rarity,
        order_index=order_index,
        metric=metric,
        window_days=window_days,
    )


DEFAULT_CATALOG: List[MilestoneDefinition] = [
    # Streak (harmony days)
    _m("streak_1", "streak", "First Step", "Complete your first day of harmony", 1, "days", "common", 1, "harmony_current"),
    _m("streak_7", "streak", "Week Warrior", "Maintain a 7-day harmony streak", 7, "days", "rare", 2, "harmony_current"),
    _m("streak_30", "streak", "Monthly Master", "Achieve a 30-day harmony streak", 30, "days", "epic", 3, "harmony_current"),
    _m("streak_100", "streak", "Centurion", "Reach a 100-day harmony streak", 100, "days", "legendary", 4, "harmony_current"),
    _m("streak_365", "streak", "Legendary", "Complete a full year of harmony", 365, "days", "legendary", 5, "harmony_current"),

    # Completion
    _m("routine_1", "completion", "Getting Started", "Complete your first routine", 1, "count", "common", 1),
    _m("routine_10", "completion", "Committed", "Complete 10 routines", 10, "count", "common", 2),
    _m("routine_50", "completion", "Dedicated", "Complete 50 routines", 50, "count", "rare", 3),
    _m("routine_100", "completion", "Veteran", "Complete 100 routines", 100, "count", "epic", 4),
    _m("routine_500", "completion", "Master", "Complete 500 routines", 500, "count", "legendary", 5),

    # Balance
    _m("balance_mind_first", "balance", "Mindful Beginning", "Complete your first Mind routine", 1, "count", "common", 1, "mind_unique"),
    _m("balance_body_first", "balance", "Physical Start", "Complete your first Body routine", 1, "count", "common", 2, "body_unique"),
    _m("balance_soul_first", "balance", "Spiritual Awakening", "Complete your first Soul routine", 1, "count", "common", 3, "soul_unique"),
    _m("balance_all_categories", "balance", "Balanced Beginner", "Complete at least one routine in each category", 3, "count", "rare", 4, "categories_active"),
    _m("balance_perfect", "balance", "Perfect Harmony", "Achieve perfect balance (33/33/33) over 30+ routines", 30, "count", "epic", 5, "even_distribution"),
    _m("balance_score_50", "balance", "Finding Balance", "Reach a harmony score of 50", 50, "percentage", "rare", 6, "harmony_score"),
    _m("balance_score_75", "balance", "In Tune", "Reach a harmony score of 75", 75, "percentage", "epic", 7, "harmony_score"),
    _m("balance_score_90", "balance", "Whole Self", "Reach a harmony score of 90", 90, "percentage", "legendary", 8, "harmony_score"),

    # Specialization (unique routines per category)
    _m("specialist_mind_50", "specialization", "Mind Master", "Complete 50 Mind routines", 50, "count", "epic", 1, "mind"),
    _m("specialist_body_50", "specialization", "Body Builder", "Complete 50 Body routines", 50, "count", "epic", 2, "body"),
    _m("specialist_soul_50", "specialization", "Soul Searcher", "Complete 50 Soul routines", 50, "count", "epic", 3, "soul"),

    # Pain
    _m("pain_first_checkin", "pain", "Recovery Begins", "Complete your first pain check-in", 1, "count", "common", 1, "checkin_count"),
    _m("pain_week_checkins", "pain", "Consistent Tracker", "Check in for 7 consecutive days", 7, "days", "rare", 2, "checkin_streak"),
    _m("pain_free_day", "pain", "Pain Free", "Experience your first pain-free day", 1, "count", "rare", 3, "pain_free_days"),
    _m("pain_free_week", "pain", "Pain Free Week", "Achieve 7 consecutive pain-free days", 7, "days", "epic", 4, "pain_free_streak"),
    _m("pain_improvement_25", "pain", "Healing Progress", "25% pain reduction over 30 days", 25, "percentage", "rare", 5, "improvement_pct", 30),
    _m("pain_improvement_50", "pain", "Major Recovery", "50% pain reduction over 60 days", 50, "percentage", "epic", 6, "improvement_pct", 60),

    # Journey
    _m("journey_started", "journey", "Journey Begins", "Start your wellness journey", 1, "boolean", "common", 1, "started"),
    _m("journey_week", "journey", "One Week In", "One week on your journey", 7, "days", "common", 2),
    _m("journey_month", "journey", "One Month Strong", "One month on your journey", 30, "days", "rare", 3),
    _m("journey_quarter", "journey", "Quarter Year", "Three months of dedication", 90, "days", "epic", 4),
    _m("journey_half", "journey", "Half Year Hero", "Six months of transformation", 180, "days", "epic", 5),
    _m("journey_year", "journey", "One Year Anniversary", "A full year of wellness", 365, "days", "legendary", 6),

    # Social
    _m("social_first_friend", "social", "Making Friends", "Add your first friend", 1, "count", "common", 1, "friends"),
    _m("social_10_friends", "social", "Social Butterfly", "Connect with 10 friends", 10, "count", "rare", 2, "friends"),
    _m("social_first_circle", "social", "Circle Creator", "Create your first circle", 1, "count", "rare", 3, "circles_created"),
    _m("social_share_routine", "social", "Community Contributor", "Share your first routine to a circle", 1, "count", "rare", 4, "routines_shared"),
    _m("social_popular_routine", "social", "Crowd Favorite", "Your routine saved by 10+ users", 10, "count", "epic", 5, "top_routine_saves"),

    # Consistency
    _m("consistency_3_days", "consistency", "Building Momentum", "3 consecutive days of activity", 3, "days", "common", 1, "activity_streak"),
    _m("consistency_7_days", "consistency", "Week Consistent", "7 consecutive days of activity", 7, "days", "rare", 2, "activity_streak"),
    _m("consistency_30_days", "consistency", "Never Miss", "30 consecutive days of activity", 30, "days", "epic", 3, "activity_streak"),
    _m("consistency_first_custom", "consistency", "Routine Builder", "Create your first custom routine", 1, "count", "rare", 4, "custom_routines"),
    _m("consistency_5_custom", "consistency", "Routine Curator", "Create 5 custom routines", 5, "count", "epic", 5, "custom_routines"),
    _m("consistency_month_80", "consistency", "Steady Rhythm", "Be active on 80% of the last 30 days", 80, "percentage", "epic", 6, "completion_ratio", 30),
]
