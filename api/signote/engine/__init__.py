"""Prioritization engine - topic frequency, standing actions, goals, scores."""

from signote.engine.frequency import (
    calculate_topic_frequency,
    mention_contribution,
    update_all_topic_frequencies,
)
from signote.engine.goals import (
    GoalUpdate,
    assign_actions_to_goals,
    build_goal_statistics,
    replace_macro_goals,
    update_macro_goals,
)
from signote.engine.refresh import (
    RefreshInProgressError,
    RefreshOrchestrator,
    RefreshReport,
    StepResult,
    get_refresh_orchestrator,
    prune_suggested_actions,
    reset_refresh_orchestrator,
)
from signote.engine.scoring import (
    calculate_action_score,
    recalculate_action_scores,
    score_action,
)
from signote.engine.standing import complete_standing, detect_standing_actions

__all__ = [
    # Frequency
    "calculate_topic_frequency",
    "mention_contribution",
    "update_all_topic_frequencies",
    # Standing actions
    "complete_standing",
    "detect_standing_actions",
    # Scoring
    "calculate_action_score",
    "recalculate_action_scores",
    "score_action",
    # Goals
    "GoalUpdate",
    "assign_actions_to_goals",
    "build_goal_statistics",
    "replace_macro_goals",
    "update_macro_goals",
    # Refresh
    "RefreshInProgressError",
    "RefreshOrchestrator",
    "RefreshReport",
    "StepResult",
    "get_refresh_orchestrator",
    "prune_suggested_actions",
    "reset_refresh_orchestrator",
]
