"""Solver settings applied to the plant simulator."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SolverConfig(BaseModel):
    """Baseline numerical settings for long-horizon stability.

    Defaults favour a stiff variable-step solver with tight tolerances and a
    one-hour step ceiling.
    """

    solver: str = Field("ode15s", min_length=1)
    rel_tol: float = Field(1e-4, gt=0)
    abs_tol: float = Field(1e-7, gt=0)
    max_step: float = Field(3600.0, gt=0)
    initial_step: float = Field(1.0, gt=0)
    max_data_points: int = Field(10_000, gt=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def relaxed(self, *, factor: float = 10.0) -> SolverConfig:
        """Return a copy with looser tolerances and a smaller max step."""
        return self.model_copy(
            update={
                "rel_tol": self.rel_tol * factor,
                "abs_tol": self.abs_tol * factor,
                "max_step": self.max_step / 2.0,
                "initial_step": min(self.initial_step, self.max_step / 2.0),
            }
        )

    def to_options(self) -> dict[str, Any]:
        """Flat option mapping handed to the simulator."""
        return self.model_dump()
