"""Savings goal planning package."""

from finance_engine.goals.planner import GoalPlanner

__all__ = ["GoalPlanner"]
