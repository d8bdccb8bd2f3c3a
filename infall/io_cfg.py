"""Configuration and I/O module for the infall engine.

This module provides:
- YAML configuration loading into a validated SimConfig
- Soft numerical-health checks on a configuration
- Example config generation
- CSV output for recorded population histories
- JSON output for diagnostics
"""

from typing import Dict, List, Tuple, Any
import numpy as np
import yaml
import json
from pathlib import Path
import warnings

from infall.config import SimConfig, VelocityLaw
from infall.constants import SOLAR_MASS, schwarzschild_radius
from infall.errors import ConfigurationError
from infall.tidal import max_stretch


# YAML section -> {yaml key: SimConfig field}
_SECTIONS = {
    'black_hole': {
        'mass_solar': 'mass_solar',
        'G': 'G',
        'c': 'c',
    },
    'body': {
        'size': 'body_size',
        'subdivisions': 'subdivisions',
        'start_radius_rs': 'start_radius_rs',
    },
    'integration': {
        'velocity_law': 'velocity_law',
        'epsilon': 'epsilon',
        'step': 'step',
        'horizon_floor': 'horizon_floor',
    },
    'tidal': {
        'growth': 'tidal_growth',
        'activation_radius_rs': 'activation_radius_rs',
        'despawn_stretch': 'despawn_stretch',
    },
    'lifecycle': {
        'visibility_cutoff': 'visibility_cutoff',
        'dilation_floor': 'dilation_floor',
        'cooldown': 'cooldown',
    },
    'render': {
        'mapping': 'render_mapping',
        'meters_to_units': 'meters_to_units',
        'compression_gain': 'compression_gain',
        'infall_axis': 'infall_axis',
        'observer_radius_rs': 'observer_radius_rs',
    },
}

_OPTIONAL_FLOATS = {'activation_radius_rs', 'despawn_stretch'}
_STRINGS = {'velocity_law', 'render_mapping'}


def _coerce(field_name: str, value: Any) -> Any:
    if field_name in _STRINGS:
        return str(value)
    if field_name in _OPTIONAL_FLOATS and value is None:
        return None
    if field_name == 'subdivisions':
        return int(value)
    if field_name == 'infall_axis':
        return tuple(float(a) for a in value)
    return float(value)


def config_from_dict(raw_config: Dict[str, Any]) -> Tuple[SimConfig, List[str]]:
    """Build a SimConfig from a parsed YAML mapping.

    Parameters
    ----------
    raw_config : dict
        Mapping of section name to option mapping (see `_SECTIONS`).
        Missing sections and options fall back to SimConfig defaults.
        `black_hole.mass_kg` may be given instead of `mass_solar`.

    Returns
    -------
    config : SimConfig
        Validated configuration.
    unknown : list of str
        Dotted names of keys that were ignored.

    Raises
    ------
    ConfigurationError
        If a value cannot be converted or fails validation.
    """
    kwargs: Dict[str, Any] = {}
    unknown: List[str] = []

    for section, body in raw_config.items():
        if section not in _SECTIONS:
            unknown.append(section)
            continue
        if body is None:
            continue
        if not isinstance(body, dict):
            raise ConfigurationError(f"Section '{section}' must be a mapping, got {type(body).__name__}")

        for key, value in body.items():
            if section == 'black_hole' and key == 'mass_kg':
                if 'mass_solar' in body:
                    raise ConfigurationError("Give black_hole.mass_solar or black_hole.mass_kg, not both")
                field_name, value = 'mass_solar', float(value) / SOLAR_MASS
            elif key in _SECTIONS[section]:
                field_name = _SECTIONS[section][key]
            else:
                unknown.append(f"{section}.{key}")
                continue

            try:
                kwargs[field_name] = _coerce(field_name, value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"{section}.{key}: cannot interpret {value!r} ({e})")

    return SimConfig(**kwargs), unknown


def load_config(yaml_path: str) -> SimConfig:
    """Load and validate a YAML configuration file.

    Parameters
    ----------
    yaml_path : str
        Path to YAML configuration file.

    Returns
    -------
    SimConfig
        Validated configuration, ready to construct a Simulation.

    Raises
    ------
    FileNotFoundError
        If yaml_path does not exist.
    yaml.YAMLError
        If YAML parsing fails.
    ConfigurationError
        If configuration values are invalid (non-positive mass, etc.).

    Notes
    -----
    Unknown sections or keys are not fatal; they are reported with a
    UserWarning so that typos do not silently fall back to defaults.

    Examples
    --------
    >>> config = load_config("infall.yaml")
    >>> print(f"{config.n_elements} elements, law={config.velocity_law.value}")
    64 elements, law=proper

    See Also
    --------
    validate_config : Soft checks for numerical health
    create_example_config : Generate example YAML file
    """
    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with open(yaml_path, 'r') as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raise ConfigurationError(f"Empty or invalid YAML file: {yaml_path}")
    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Top level of {yaml_path} must be a mapping")

    config, unknown = config_from_dict(raw_config)

    if unknown:
        warnings.warn(
            f"Ignoring unknown configuration keys in {yaml_path}: {', '.join(unknown)}",
            UserWarning
        )

    return config


def validate_config(config: SimConfig) -> Tuple[bool, List[str]]:
    """Check a configuration for numerical and visual health.

    SimConfig already rejects values that make the simulation meaningless.
    This function looks for combinations that run but behave badly.

    Parameters
    ----------
    config : SimConfig
        Configuration to check.

    Returns
    -------
    is_valid : bool
        False if the simulation would be degenerate (every element dies
        on the first tick).
    warnings_list : list of str
        Messages about potential issues.

    Notes
    -----
    **Checks performed**:

    1. Coordinate step: c*step should be well below rs*horizon_floor,
       otherwise a single step jumps most of the way to the floor.
    2. Proper-time epsilon: > 1e-2 makes the fall visibly jerky.
    3. Starting geometry: an element whose nearest face already lies
       inside rs at reset dies on the first tick.
    4. Activation radius inside the horizon floor: stretch never grows.
    5. Despawn ceiling above max_stretch at the start radius: unreachable
       unless the element stretches before it is clamped.
    6. Visibility cutoff above the dilation at the start radius.
    """
    warnings_list = []
    is_valid = True

    rs = schwarzschild_radius(config.mass_solar * SOLAR_MASS, config.G, config.c)
    size = config.element_size
    floor_r = rs * (1.0 + config.horizon_floor)

    if config.velocity_law is VelocityLaw.COORDINATE:
        jump = config.c * config.step
        if jump > 0.1 * rs * config.horizon_floor:
            warnings_list.append(
                f"Coordinate step moves up to c*step = {jump:.3e} m per step, "
                f"comparable to the horizon floor band {rs * config.horizon_floor:.3e} m. "
                f"Consider step < {0.1 * rs * config.horizon_floor / config.c:.3e} s."
            )
    elif config.epsilon > 1e-2:
        warnings_list.append(
            f"epsilon = {config.epsilon:.3e} moves each element by more than 1% "
            f"of its radius per tick; the fall will look jerky."
        )

    r_start = config.start_radius_rs * rs
    half_diagonal = 0.5 * config.body_size * np.sqrt(3.0)
    if r_start - half_diagonal - size / 2.0 < rs:
        is_valid = False
        warnings_list.append(
            f"Body of size {config.body_size:.3e} m starting at "
            f"{config.start_radius_rs:.3f} rs already reaches inside the horizon."
        )

    if config.activation_radius_rs is not None and config.activation_radius_rs * rs <= floor_r:
        warnings_list.append(
            f"activation_radius_rs = {config.activation_radius_rs} lies inside the horizon "
            f"floor; stretch will never accumulate."
        )

    if config.despawn_stretch is not None:
        limit = float(max_stretch(r_start, rs, size))
        if config.despawn_stretch > limit:
            warnings_list.append(
                f"despawn_stretch = {config.despawn_stretch} exceeds the geometric "
                f"maximum {limit:.3e} at the start radius; the ceiling can never be reached."
            )

    dilation_start = np.sqrt(1.0 - 1.0 / config.start_radius_rs)
    if config.visibility_cutoff >= dilation_start:
        is_valid = False
        warnings_list.append(
            f"visibility_cutoff = {config.visibility_cutoff} is above the dilation "
            f"factor {dilation_start:.3f} at the start radius; every element fades "
            f"out on the first tick."
        )

    if config.tidal_growth == 0.0:
        warnings_list.append("tidal_growth = 0: elements will never stretch.")

    return is_valid, warnings_list


def create_example_config(output_path: str) -> None:
    """Generate an example YAML configuration file.

    The example is a 10 solar-mass hole with a 1 km body split into 4x4x4
    elements, released at 4 rs and integrated with the proper-time law.

    Parameters
    ----------
    output_path : str
        Path where YAML file will be written.

    Examples
    --------
    >>> create_example_config("infall.yaml")
    >>> config = load_config("infall.yaml")
    >>> config.subdivisions
    4
    """
    defaults = SimConfig()
    rs = defaults.constants().rs

    yaml_content = f"""# Relativistic infall configuration
#
# A body released at rest near a non-rotating black hole, simulated as a
# lattice of independent elements. Lengths are metres, times seconds.
# Radii marked "_rs" are multiples of the Schwarzschild radius
# (rs = {rs:.1f} m for the default mass).

# ============================================================================
# Black hole
# ============================================================================
black_hole:
  # Mass in solar masses (or give mass_kg instead)
  mass_solar: {defaults.mass_solar}
  # Gravitational constant and speed of light (SI)
  G: {defaults.G}
  c: {defaults.c}

# ============================================================================
# Body: lattice of falling elements
# ============================================================================
body:
  # Edge length of the whole body [m]
  size: {defaults.body_size}
  # Cells per axis; subdivisions**3 elements are simulated
  subdivisions: {defaults.subdivisions}
  # Release radius of the body centre
  start_radius_rs: {defaults.start_radius_rs}

# ============================================================================
# Integration
# ============================================================================
integration:
  # proper:     dr/dtau = -c sqrt(rs/r), adaptive step dtau = epsilon r / |v|
  # coordinate: dr/dt   = -c (1 - rs/r), fixed step
  velocity_law: {defaults.velocity_law.value}
  # Fraction of r moved per tick by the proper-time law
  epsilon: {defaults.epsilon}
  # Fixed coordinate step [s] for the coordinate law
  step: {defaults.step}
  # Radii are clamped to rs * (1 + horizon_floor); reaching it is absorption
  horizon_floor: {defaults.horizon_floor}

# ============================================================================
# Tidal stretching
# ============================================================================
tidal:
  # Visual growth constant k in dstretch = a_tidal * k * dt (not physical)
  growth: {defaults.tidal_growth}
  # Only stretch inside this radius (null: always)
  activation_radius_rs: null
  # Remove elements whose stretch reaches this value (null: never)
  despawn_stretch: null

# ============================================================================
# Lifecycle
# ============================================================================
lifecycle:
  # Elements fade out and die when sqrt(1 - rs/r) drops below this
  visibility_cutoff: {defaults.visibility_cutoff}
  # Floor under 1 - rs/r in the dilation factor
  dilation_floor: {defaults.dilation_floor}
  # Delay between the last element dying and the population reset [s]
  cooldown: {defaults.cooldown}

# ============================================================================
# Render mapping
# ============================================================================
render:
  # linear or compressed (logarithmic in r/rs - 1)
  mapping: {defaults.render_mapping.value}
  # Display units per metre
  meters_to_units: {defaults.meters_to_units}
  # Gain of the compressed mapping
  compression_gain: {defaults.compression_gain}
  # Direction from the hole to the body at release
  infall_axis: {list(defaults.infall_axis)}
  # Observer distance on the infall axis
  observer_radius_rs: {defaults.observer_radius_rs}
"""

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        f.write(yaml_content)

    print(f"Example configuration written to: {output_path}")
    print(f"  rs = {rs:.3e} m")
    print(f"  elements = {defaults.n_elements}")


def save_history_csv(filepath: str, history: Dict[str, Any]) -> None:
    """Save a recorded population history to CSV.

    Writes one row per body per recorded tick with columns
    tick, time, index, r, tau, stretch, opacity, alive.

    Parameters
    ----------
    filepath : str
        Output CSV file path.
    history : dict
        History from lifecycle.run_ticks().

    Examples
    --------
    >>> save_history_csv("history.csv", hist)
    Saved 640 states (10 records × 64 elements) to history.csv
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    r = history['r']
    n_records, n_bodies = r.shape

    with open(filepath, 'w') as f:
        f.write("tick,time,index,r,tau,stretch,opacity,alive\n")
        for k in range(n_records):
            for i in range(n_bodies):
                f.write(
                    f"{history['tick'][k]},{history['time'][k]:.15e},{i},"
                    f"{r[k, i]:.15e},{history['tau'][k, i]:.15e},"
                    f"{history['stretch'][k, i]:.15e},{history['opacity'][k, i]:.15e},"
                    f"{int(history['alive'][k, i])}\n"
                )

    print(f"Saved {n_records * n_bodies} states ({n_records} records × {n_bodies} elements) to {filepath}")


def save_diagnostics_json(filepath: str, diagnostics: Dict[str, Any]) -> None:
    """Save diagnostics data to a JSON file.

    numpy arrays and scalars (and Enum members) are converted to plain
    Python types before serialisation.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    def convert_to_json_serializable(obj):
        """Recursively convert numpy types to JSON-friendly values."""
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, dict):
            return {str(key): convert_to_json_serializable(val) for key, val in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [convert_to_json_serializable(item) for item in obj]
        elif isinstance(obj, (np.integer, np.floating, np.bool_)):
            return obj.item()
        elif hasattr(obj, 'value') and isinstance(getattr(obj, 'value'), str):
            return obj.value
        else:
            return obj

    with open(filepath, 'w') as f:
        json.dump(convert_to_json_serializable(diagnostics), f, indent=2)

    print(f"Saved diagnostics to {filepath} ({len(diagnostics)} top-level keys)")
