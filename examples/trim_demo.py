"""
Trim Demo: Level Turns and Climbs of the UltraStick 25e

Trims the rigid UltraStick 25e model across:
1. Turn rate (level turns, 0 to 30 deg/s): bank angle, throttle, rudder
2. Flight-path angle (straight climbs/descents, -4 to +6 deg): throttle, pitch

Each trim seeds the next one, as a continuation sweep would. The
miniMUTT straight-and-level trim is shown for comparison of the
aeroelastic static deflection.

Run: python examples/trim_demo.py
"""

import numpy as np
import matplotlib.pyplot as plt

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config_loader import load_actuator_limits, load_solver_settings, load_trim_seed
from trim_sim import trim_sim, print_trim_summary


def sweep(name, seed, targets, limits, settings):
    """Trim a sequence of targets, seeding each from the previous result."""
    results = []
    prior = seed
    for target in targets:
        trim = trim_sim(name, prior, target=target, actuator_limits=limits,
                        settings=settings, verbose=False)
        results.append(trim)
        if trim.converged:
            prior = trim
    return results


def main():
    print("=" * 70)
    print("Trim Demo: UltraStick 25e @ 17 m/s")
    print("=" * 70)

    name = 'UltraStick25e'
    seed = load_trim_seed(name)
    limits = load_actuator_limits(name)
    settings = load_solver_settings()

    # =========================================================================
    # A. STRAIGHT AND LEVEL
    # =========================================================================
    level = trim_sim(name, seed, target={'airspeed': 17, 'gamma': 0},
                     actuator_limits=limits, settings=settings)

    # =========================================================================
    # B. LEVEL TURNS
    # =========================================================================
    turn_rates = np.radians(np.arange(0.0, 31.0, 5.0))
    turns = sweep(name, level,
                  [{'airspeed': 17, 'gamma': 0, 'psidot': float(r)} for r in turn_rates],
                  limits, settings)

    print("\n  psidot (deg/s)   phi (deg)   motor   rudder (deg)   converged")
    for rate, trim in zip(turn_rates, turns):
        print(f"  {np.degrees(rate):10.1f}   {np.degrees(trim.states['attitude'][0]):9.2f}"
              f"   {trim.motor:5.3f}   {np.degrees(trim.actuators[1]):12.2f}"
              f"   {'Yes' if trim.converged else 'No'}")

    # =========================================================================
    # C. CLIMBS AND DESCENTS
    # =========================================================================
    gammas = np.radians(np.arange(-4.0, 7.0, 2.0))
    climbs = sweep(name, level,
                   [{'airspeed': 17, 'gamma': float(g)} for g in gammas],
                   limits, settings)

    # Figure: turn and climb trims
    fig, axes = plt.subplots(1, 2, figsize=(12, 5))

    ax = axes[0]
    bank = [np.degrees(t.states['attitude'][0]) for t in turns]
    ax.plot(np.degrees(turn_rates), bank, 'o-', linewidth=2, label='Trimmed φ')
    ax.plot(np.degrees(turn_rates), np.degrees(np.arctan(17 * turn_rates / 9.81)),
            '--', color='gray', label='tan φ = Vψ̇/g')
    ax.set_xlabel('Turn rate ψ̇ (deg/s)')
    ax.set_ylabel('Bank angle φ (deg)')
    ax.set_title('Level Turns at 17 m/s')
    ax.legend(loc='upper left')
    ax.grid(True, alpha=0.3)

    ax = axes[1]
    ax.plot(np.degrees(gammas), [t.motor for t in climbs], 's-', linewidth=2,
            color='tab:red')
    ax.set_xlabel('Flight-path angle γ (deg)')
    ax.set_ylabel('Throttle (0-1)')
    ax.set_title('Throttle for Steady Climb/Descent')
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    output_path = os.path.join(os.path.dirname(__file__), 'trim_sweeps.png')
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    print(f"\nFigure saved: {output_path}")

    # plt.show()  # Uncomment for interactive display

    # =========================================================================
    # D. AEROELASTIC AIRFRAME
    # =========================================================================
    print("\n" + "=" * 70)
    print("miniMUTT straight and level @ 23 m/s")
    print("=" * 70)
    flex = trim_sim('miniMUTT', load_trim_seed('miniMUTT'),
                    target={'airspeed': 23, 'gamma': 0},
                    actuator_limits=load_actuator_limits('miniMUTT'),
                    settings=settings, verbose=False)
    print(print_trim_summary(flex))
    print(f"  Modal deflections η = {np.array2string(flex.states['flex'], precision=5)}")

    return turns, climbs


if __name__ == "__main__":
    turns, climbs = main()
