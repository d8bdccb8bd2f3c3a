"""Exception types for the infall engine.

Two kinds of failure are signalled with exceptions:

- ConfigurationError: a configuration value makes the simulation meaningless
  (non-positive mass, body size, epsilon, ...). Raised at construction time,
  so a badly configured simulation never starts.
- PreconditionError: an engine routine was called with state that can only
  come from a caller defect (non-finite or non-positive radius). Never caught
  inside the package and never retried.

Approach to the horizon is expected physical behaviour and is handled by
clamping and adaptive stepping, never by raising.
"""


class ConfigurationError(ValueError):
    """Invalid simulation configuration."""


class PreconditionError(RuntimeError):
    """Engine routine invoked with invalid state (caller bug)."""
