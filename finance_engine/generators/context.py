"""
Response Context

Everything a generator may read while answering one question, plus the
slots where goal and scenario generators report what they did.

DESIGN DECISION: Generators are synchronous and side-effect free apart
from the goal planner. Anything the orchestrator must follow up on
(persisting a new goal, auditing a rejection or a simulation) is written
to the `outcome` slots here and handled after generation.
"""

from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_engine.goals.planner import GoalPlanner
from finance_engine.models.finance import (
    Alert,
    ConversationContext,
    FinancialSnapshot,
    Goal,
    ScenarioResult,
)
from finance_engine.simulation.simulator import ScenarioSimulator


class GenerationOutcome(BaseModel):
    """What a generator changed or computed, for the orchestrator to act on."""

    created_goal: Optional[Goal] = None
    rejected_goal_name: Optional[str] = None
    rejection_reason: Optional[str] = None
    simulation: Optional[ScenarioResult] = None


class ResponseContext(BaseModel):
    """Inputs for one generation pass."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    question: str
    snapshot: FinancialSnapshot
    conversation: ConversationContext = Field(default_factory=ConversationContext)
    planner: GoalPlanner = Field(default_factory=GoalPlanner)
    simulator: ScenarioSimulator = Field(default_factory=ScenarioSimulator)
    alerts: tuple[Alert, ...] = ()
    recent_questions: list[str] = Field(default_factory=list)
    outcome: GenerationOutcome = Field(default_factory=GenerationOutcome)

    @property
    def lowered(self) -> str:
        return self.question.lower()

    def first_open_goal(self) -> Optional[Goal]:
        """First active or behind goal, with progress recomputed for this snapshot."""
        goals = self.planner.open_goals()
        if not goals:
            return None
        return self.planner.update_progress(goals[0], self.snapshot)


# A generator returns a response, or None to let the keyword chain answer
Generator = Callable[[ResponseContext], Optional[str]]
