"""
Population lifecycle for the infall engine.

The Simulation is the single explicit context object of the engine. It owns
the constants, the flat list of bodies (one per lattice element), the phase
flag and the cooldown timer, and it drives one tick of the whole population
per display frame.

Per-body state machine:

    ALIVE --(absorbed / removed)--> DEAD     (terminal until reset)

A body dies when any of these holds after it has been integrated:

    (a) horizon:        r <= rs * (1 + horizon_floor)
    (b) face crossing:  the stretch it carried into the tick puts its nearest
                        face inside rs at the new radius
    (c) redshift:       sqrt(max(dilation_floor, 1 - rs/r)) < visibility_cutoff
    (d) despawn:        stretch reached the optional despawn ceiling

Simulation state machine:

    RUNNING --(alive count hits zero)--> COOLDOWN --(delay elapsed)--> reset
        --> RUNNING

    pause() moves to PAUSED from either phase; resume() returns to the phase
    held before pausing. While PAUSED ticks are ignored entirely, so the
    cooldown clock does not advance either.

Everything runs synchronously on the caller's thread. The cooldown delay is
the only deferred work; it is scheduled on a TaskScheduler whose clock moves
by each tick's elapsed time.
"""

from enum import Enum
from typing import Dict, List, Optional
import numpy as np

from infall.bodies import Body, HORIZON, FACE_CROSSING, REDSHIFT, DESPAWN
from infall.config import SimConfig
from infall.constants import Constants
from infall.diagnostics import opacity_from_dilation
from infall.dynamics import advance, time_dilation_factor, horizon_floor_radius
from infall.geometry import lattice_offsets
from infall.render import RenderState, map_to_render
from infall.scheduler import TaskScheduler, TimerHandle
from infall.tidal import apply_tidal


class Phase(str, Enum):
    RUNNING = "running"
    COOLDOWN = "cooldown"
    PAUSED = "paused"


class Simulation:
    """
    One independent infall simulation.

    Parameters
    ----------
    config : SimConfig
        Validated configuration. Constructing the Simulation is where a
        configuration error surfaces (SimConfig validates itself).
    scheduler : TaskScheduler, optional
        Clock for the cooldown timer. A private one is created if omitted.
    autostart : bool
        Start in RUNNING (default) or PAUSED.
    verbose : bool
        Print state transitions.

    Examples
    --------
    >>> sim = Simulation(SimConfig(subdivisions=2))
    >>> len(sim.bodies)
    8
    >>> report = sim.tick(1 / 60)
    >>> report['alive']
    8
    """

    def __init__(
        self,
        config: SimConfig,
        scheduler: Optional[TaskScheduler] = None,
        autostart: bool = True,
        verbose: bool = False,
    ):
        self.config = config
        self.constants: Constants = config.constants()
        self.scheduler = scheduler if scheduler is not None else TaskScheduler()
        self.verbose = verbose

        self.tick_count = 0
        self.resets = 0
        self._cooldown: Optional[TimerHandle] = None
        self._resume_phase = Phase.RUNNING

        offsets = lattice_offsets(config.subdivisions, config.body_size)
        self.bodies: List[Body] = [
            Body(index=i, offset=offset, r=self.initial_radius(offset))
            for i, offset in enumerate(offsets)
        ]
        for body in self.bodies:
            self._refresh_opacity(body)
        self._alive_count = len(self.bodies)
        self.phase = Phase.RUNNING if autostart else Phase.PAUSED

        if self.verbose:
            print(f"Simulation created: {len(self.bodies)} elements")
            print(f"  {self.constants}")
            print(f"  start radius: {config.start_radius_rs:.3f} rs")

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self.phase is not Phase.PAUSED

    @property
    def alive_count(self) -> int:
        return self._alive_count

    @property
    def cooldown_pending(self) -> bool:
        return self._cooldown is not None and self._cooldown.pending

    def initial_radius(self, offset) -> float:
        """Start radius of an element: start_radius_rs*rs + |offset|."""
        return self.config.start_radius_rs * self.constants.rs + float(np.linalg.norm(offset))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """
        Reinitialise every body and return to RUNNING.

        Cancels an outstanding cooldown timer. Idempotent: calling it any
        number of times before the next tick leaves identical state.
        A paused simulation stays paused, but will resume into RUNNING.
        """
        if self._cooldown is not None:
            self._cooldown.cancel()
            self._cooldown = None

        for body in self.bodies:
            body.reinitialize(self.initial_radius(body.offset))
            self._refresh_opacity(body)
        self._alive_count = len(self.bodies)

        if self.phase is Phase.PAUSED:
            self._resume_phase = Phase.RUNNING
        else:
            self.phase = Phase.RUNNING
        self.resets += 1

        if self.verbose:
            print(f"Population reset #{self.resets} at tick {self.tick_count}")

    def enter_cooldown(self) -> bool:
        """
        Schedule the deferred reset. No-op if a cooldown is already pending.

        Returns
        -------
        bool
            True if a timer was scheduled by this call.
        """
        if self.cooldown_pending:
            return False

        self._cooldown = self.scheduler.call_later(self.config.cooldown, self._on_cooldown_elapsed)
        if self.phase is Phase.PAUSED:
            self._resume_phase = Phase.COOLDOWN
        else:
            self.phase = Phase.COOLDOWN

        if self.verbose:
            print(f"All elements absorbed at tick {self.tick_count}; "
                  f"reset in {self.config.cooldown:.2f} s")
        return True

    def _on_cooldown_elapsed(self) -> None:
        self._cooldown = None
        self.reset()

    def pause(self) -> None:
        """Halt tick processing. Idempotent; body state is kept."""
        if self.phase is Phase.PAUSED:
            return
        self._resume_phase = self.phase
        self.phase = Phase.PAUSED
        if self.verbose:
            print(f"Paused at tick {self.tick_count}")

    def resume(self) -> None:
        """Resume tick processing in the phase held before pausing."""
        if self.phase is not Phase.PAUSED:
            return
        self.phase = self._resume_phase
        if self.verbose:
            print(f"Resumed at tick {self.tick_count} ({self.phase.value})")

    def session_start(self) -> None:
        """Host session began: reset the population and run."""
        self.reset()
        self.resume()

    def session_end(self) -> None:
        """Host session ended: pause."""
        self.pause()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _death_cause(self, body: Body, tidal) -> Optional[str]:
        rs = self.constants.rs
        if body.r <= horizon_floor_radius(self.constants, self.config):
            return HORIZON
        if tidal.face_crossed:
            return FACE_CROSSING
        dilation = time_dilation_factor(body.r, rs, self.config.dilation_floor)
        if dilation < self.config.visibility_cutoff:
            return REDSHIFT
        if tidal.ceiling_reached:
            return DESPAWN
        return None

    def _refresh_opacity(self, body: Body) -> None:
        dilation = time_dilation_factor(body.r, self.constants.rs, self.config.dilation_floor)
        body.opacity = float(opacity_from_dilation(dilation, self.config.visibility_cutoff))

    def step_body(self, body: Body) -> bool:
        """
        Integrate, deform and check one living body.

        Returns
        -------
        bool
            True if the body died this tick.
        """
        dt = advance(body, None, self.constants, self.config)
        tidal = apply_tidal(body, dt, self.constants, self.config)

        cause = self._death_cause(body, tidal)
        if cause is not None:
            if cause == FACE_CROSSING:
                # dead record keeps the deformation that crossed, not the clamp
                body.stretch = tidal.carried_stretch
            body.kill(cause, self.tick_count)
            return True

        self._refresh_opacity(body)
        return False

    def tick(self, elapsed: float) -> Optional[Dict]:
        """
        Advance the whole simulation by one display frame.

        Parameters
        ----------
        elapsed : float
            Wall-clock duration of the frame [s]; drives the cooldown clock.
            Each living body takes one integration step per tick.

        Returns
        -------
        dict or None
            None if paused; otherwise a report with 'tick', 'phase',
            'alive', 'died', 'death_tau' (largest proper time among the
            bodies that died this tick, or None) and 'reset' (whether the
            cooldown fired).
        """
        if self.phase is Phase.PAUSED:
            return None

        self.tick_count += 1
        died = 0
        death_tau = None

        if self.phase is Phase.RUNNING:
            for body in self.bodies:
                if body.alive and self.step_body(body):
                    died += 1
                    death_tau = body.tau if death_tau is None else max(death_tau, body.tau)
            self._alive_count -= died

            if self._alive_count == 0:
                self.enter_cooldown()

        resets_before = self.resets
        self.scheduler.advance(elapsed)

        return {
            'tick': self.tick_count,
            'phase': self.phase,
            'alive': self._alive_count,
            'died': died,
            'death_tau': death_tau,
            'reset': self.resets != resets_before,
        }

    # ------------------------------------------------------------------
    # Render snapshots
    # ------------------------------------------------------------------

    def snapshots(self) -> List[RenderState]:
        """Read-only render state of every body, in index order."""
        return [map_to_render(body, self.constants, self.config) for body in self.bodies]

    def __str__(self) -> str:
        return (
            f"Simulation({self.phase.value}, tick={self.tick_count}, "
            f"alive={self._alive_count}/{len(self.bodies)}, resets={self.resets})"
        )


# ============================================================================
# Headless driver
# ============================================================================

def run_ticks(
    sim: Simulation,
    n_ticks: int,
    elapsed: float,
    opts: Optional[Dict] = None,
) -> Dict:
    """
    Drive `sim` for up to `n_ticks` frames and record the population history.

    Parameters
    ----------
    sim : Simulation
        Simulation to drive. Modified in place.
    n_ticks : int
        Maximum number of ticks.
    elapsed : float
        Frame duration passed to every tick [s].
    opts : dict, optional
        'save_every' : int (default: 1)
            Record state every N ticks.
        'stop_when_absorbed' : bool (default: False)
            Stop as soon as the population enters cooldown.
        'verbose' : bool (default: False)
            Print progress.
        'progress_every' : int (default: 1000)
            Progress interval in ticks (if verbose).

    Returns
    -------
    history : dict
        'tick' : ndarray, shape (n_saved,)
        'time' : ndarray, shape (n_saved,), wall time of each record [s]
        'r', 'tau', 'stretch', 'opacity' : ndarray, shape (n_saved, N)
        'alive' : ndarray of bool, shape (n_saved, N)
        'phase' : list of str, one per record
        'resets' : int, population resets during the run
        'deaths' : int, bodies that died during the run, across resets
        'max_death_tau' : float or None, largest proper time at death
        'ticks_run' : int

    Examples
    --------
    >>> sim = Simulation(SimConfig(subdivisions=1))
    >>> hist = run_ticks(sim, 10000, 1 / 60, {'stop_when_absorbed': True})
    >>> bool(hist['alive'][-1].any())
    False
    """
    if opts is None:
        opts = {}

    save_every = opts.get('save_every', 1)
    stop_when_absorbed = opts.get('stop_when_absorbed', False)
    verbose = opts.get('verbose', False)
    progress_every = opts.get('progress_every', 1000)

    ticks, times, phases = [], [], []
    r, tau, stretch, opacity, alive = [], [], [], [], []

    def record():
        ticks.append(sim.tick_count)
        times.append(sim.scheduler.now)
        phases.append(sim.phase.value)
        r.append([b.r for b in sim.bodies])
        tau.append([b.tau for b in sim.bodies])
        stretch.append([b.stretch for b in sim.bodies])
        opacity.append([b.opacity for b in sim.bodies])
        alive.append([b.alive for b in sim.bodies])

    record()
    resets_start = sim.resets
    deaths = 0
    max_death_tau = None
    ticks_run = 0

    if verbose:
        print(f"Starting run: up to {n_ticks} ticks, elapsed={elapsed:.6e} s")
        print(f"  Elements: {len(sim.bodies)}")
        print(f"  Save every: {save_every} ticks")
        print()

    for step in range(1, n_ticks + 1):
        report = sim.tick(elapsed)
        if report is None:
            break
        ticks_run = step
        deaths += report['died']
        if report['death_tau'] is not None:
            max_death_tau = max(report['death_tau'], max_death_tau or 0.0)

        if step % save_every == 0:
            record()

        if verbose and step % progress_every == 0:
            rs = sim.constants.rs
            living = [b.r for b in sim.bodies if b.alive]
            r_min = min(living) / rs if living else float('nan')
            print(f"  Tick {step:8d}/{n_ticks}  alive={report['alive']:5d}  "
                  f"min r={r_min:.5f} rs  phase={report['phase'].value}")

        if stop_when_absorbed and (report['alive'] == 0 or report['reset']):
            if step % save_every != 0:
                record()
            break

    if verbose:
        print()
        print(f"Run complete after {ticks_run} ticks.")
        print()

    return {
        'tick': np.array(ticks, dtype=np.int64),
        'time': np.array(times, dtype=np.float64),
        'r': np.array(r, dtype=np.float64),
        'tau': np.array(tau, dtype=np.float64),
        'stretch': np.array(stretch, dtype=np.float64),
        'opacity': np.array(opacity, dtype=np.float64),
        'alive': np.array(alive, dtype=bool),
        'phase': phases,
        'resets': sim.resets - resets_start,
        'deaths': deaths,
        'max_death_tau': max_death_tau,
        'ticks_run': ticks_run,
    }
