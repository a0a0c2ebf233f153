"""What-if scenario simulation."""

from finance_engine.simulation.simulator import ScenarioSimulator

__all__ = ["ScenarioSimulator"]
