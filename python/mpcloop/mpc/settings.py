"""
MPC Settings
============

Immutable per-run configuration of the MPC loop.
"""

from __future__ import annotations

import warnings
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np

from ..exceptions import ConfigurationError


class HorizonMode(Enum):
    """
    Time horizon semantics.

    Attributes:
        FIXED_FINAL_TIME: Absolute end time; the horizon shrinks as time advances
        CONSTANT_RECEDING: Constant length; the end time moves with the clock
    """
    FIXED_FINAL_TIME = "fixed_final_time"
    CONSTANT_RECEDING = "constant_receding"

    def __str__(self) -> str:
        return self.value


class TailExtension(Enum):
    """
    How the warm start fills steps beyond the end of the previous policy.

    Attributes:
        HOLD_LAST: Repeat the last feed-forward control and gain
        PROBLEM_DEFAULT: Append zero feed-forward with the problem's default gain
    """
    HOLD_LAST = "hold_last"
    PROBLEM_DEFAULT = "problem_default"

    def __str__(self) -> str:
        return self.value


def _coerce_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if value.lower() in (member.value, member.name.lower()):
                return member
    raise ConfigurationError(
        f"invalid {enum_cls.__name__} '{value}', "
        f"expected one of {[m.value for m in enum_cls]}"
    )


@dataclass(frozen=True)
class MpcSettings:
    """
    MPC loop settings.

    Attributes:
        dt: Discretization step of the policies [s]
        max_iterations: Optimizer refinement passes per cycle
        horizon_mode: Fixed final time or constant receding horizon
        cold_start: Ignore the previous policy and start from the default guess
        state_forward_integration: Predict the state at policy-application time
        post_truncation: Drop the already elapsed prefix of each new policy
        measure_delay: Estimate the delay from the previous optimize duration
        delay_measurement_multiplier: Scale factor on the measured delay
        additional_delay_us: Delay added unconditionally [us]
        fixed_delay_us: Assumed delay when not measuring [us]
        tail_extension: Warm-start tail extension rule
        solve_time_limit: Per-cycle optimizer deadline [s], optional

    Example:
        >>> settings = MpcSettings(dt=0.001, max_iterations=5)
        >>> settings = MpcSettings.from_dict({"horizon_mode": "constant_receding"})
    """
    dt: float = 0.001
    max_iterations: int = 5
    horizon_mode: HorizonMode = HorizonMode.FIXED_FINAL_TIME
    cold_start: bool = False
    state_forward_integration: bool = True
    post_truncation: bool = True
    measure_delay: bool = True
    delay_measurement_multiplier: float = 1.0
    additional_delay_us: float = 0.0
    fixed_delay_us: float = 0.0
    tail_extension: TailExtension = TailExtension.HOLD_LAST
    solve_time_limit: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "horizon_mode", _coerce_enum(HorizonMode, self.horizon_mode))
        object.__setattr__(
            self, "tail_extension", _coerce_enum(TailExtension, self.tail_extension)
        )
        self.validate()

    def validate(self) -> None:
        """
        Check the settings for consistency.

        Raises:
            ConfigurationError: If any value is out of range
        """
        if not np.isfinite(self.dt) or self.dt <= 0:
            raise ConfigurationError(f"dt must be positive, got {self.dt}")
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 1:
            raise ConfigurationError(
                f"max_iterations must be a positive integer, got {self.max_iterations}"
            )
        if self.delay_measurement_multiplier < 0:
            raise ConfigurationError(
                "delay_measurement_multiplier must be non-negative, "
                f"got {self.delay_measurement_multiplier}"
            )
        if self.additional_delay_us < 0:
            raise ConfigurationError(
                f"additional_delay_us must be non-negative, got {self.additional_delay_us}"
            )
        if self.fixed_delay_us < 0:
            raise ConfigurationError(
                f"fixed_delay_us must be non-negative, got {self.fixed_delay_us}"
            )
        if self.solve_time_limit is not None and self.solve_time_limit <= 0:
            raise ConfigurationError(
                f"solve_time_limit must be positive, got {self.solve_time_limit}"
            )

        if self.measure_delay and self.delay_measurement_multiplier == 0:
            warnings.warn(
                "measure_delay is enabled with delay_measurement_multiplier=0; "
                "measured delays will be ignored"
            )

    @property
    def additional_delay(self) -> float:
        """Additional delay in seconds."""
        return self.additional_delay_us * 1e-6

    @property
    def fixed_delay(self) -> float:
        """Assumed delay in seconds."""
        return self.fixed_delay_us * 1e-6

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "MpcSettings":
        """
        Create MpcSettings from a dictionary (e.g., parsed from a config file).

        Args:
            config_dict: Settings dictionary; enums may be given as strings.

        Returns:
            MpcSettings instance

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config_dict) - known)
        if unknown:
            raise ConfigurationError(f"unknown settings: {unknown}")
        return cls(**config_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a plain dictionary."""
        config = asdict(self)
        config["horizon_mode"] = self.horizon_mode.value
        config["tail_extension"] = self.tail_extension.value
        return config
