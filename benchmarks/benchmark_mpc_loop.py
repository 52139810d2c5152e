#!/usr/bin/env python3
"""
mpcloop Benchmark: iLQR-MPC on a damped oscillator
"""

import sys
sys.path.insert(0, '../python')

import time
import numpy as np

import mpcloop
from mpcloop import (
    IterativeLQR,
    MpcController,
    MpcSettings,
    OptConProblem,
    Policy,
    QuadraticCost,
    second_order_system,
)
from mpcloop.mpc import forward_integrate

print(f"mpcloop version: {mpcloop.__version__}")
print()


def build_problem(time_horizon=3.0, seed=42):
    """Oscillator regulation problem with a random initial state."""
    rng = np.random.default_rng(seed)
    cost = QuadraticCost(
        Q=np.diag([1.0, 0.1]),
        R=np.array([[0.01]]),
        Qf=np.diag([10.0, 1.0]),
    )
    return OptConProblem(
        second_order_system(w_n=0.1, zeta=5.0),
        cost,
        time_horizon=time_horizon,
        initial_state=rng.uniform(-1.0, 1.0, size=2),
    )


def solve_full(problem, dt):
    """Solve the full problem once; the result seeds the MPC loop."""
    K = int(round(problem.time_horizon / dt))
    guess = Policy.zeros(K, n_inputs=problem.n_inputs, n_states=problem.n_states, dt=dt)

    start = time.perf_counter()
    result = IterativeLQR().solve(problem, guess, max_iterations=10)
    elapsed = time.perf_counter() - start

    print(f"  Full solve: {elapsed*1000:8.1f} ms, cost={result.cost:10.4f}, "
          f"iters={result.iterations}, status={result.status}")
    return result


def benchmark_loop(max_runs=2000, noise=0.1, seed=0):
    """Run MPC against the wall clock until the horizon is reached."""
    print("=" * 70)
    print("iLQR-MPC Loop Benchmark (fixed final time, 3 s)")
    print("=" * 70)

    settings = MpcSettings(
        dt=0.001,
        max_iterations=5,
        state_forward_integration=True,
        post_truncation=True,
        measure_delay=True,
        delay_measurement_multiplier=1.0,
        horizon_mode="fixed_final_time",
        cold_start=False,
        additional_delay_us=0,
    )

    problem = build_problem()
    initial = solve_full(problem, settings.dt)

    mpc = MpcController(problem, IterativeLQR(), settings)
    mpc.set_initial_guess(initial.policy, initial.trajectory)

    rng = np.random.default_rng(seed)
    x = problem.initial_state
    policy = None
    t_prev = 0.0
    start_time = time.perf_counter()

    runs = 0
    for i in range(max_runs):
        t = time.perf_counter() - start_time

        # The plant runs the last policy until the new measurement
        if policy is not None and t > t_prev:
            x = forward_integrate(problem.system, policy, x, t_prev, t)
        measured = x + noise * rng.uniform(-1.0, 1.0, size=x.shape) if i > 0 else x

        success, new_policy, _ = mpc.run(measured, t)
        runs += 1
        if mpc.time_horizon_reached() or not success:
            break

        policy = new_policy
        t_prev = t

    elapsed = time.perf_counter() - start_time
    print(f"  Runs:       {runs}")
    print(f"  Wall time:  {elapsed:8.3f} s")
    print(f"  Final x:    {np.array2string(x, precision=4)}")
    print()

    mpc.print_mpc_summary()


def benchmark_cold_vs_warm(n_cycles=50):
    """Compare per-cycle solve times with and without warm starting."""
    print("\n" + "=" * 70)
    print("Cold vs Warm Start")
    print("=" * 70)
    print(f"{'mode':>8} {'mean (ms)':>12} {'max (ms)':>12} {'failures':>10}")
    print("-" * 70)

    for cold in (True, False):
        settings = MpcSettings(dt=0.01, max_iterations=5, cold_start=cold,
                               horizon_mode="constant_receding")
        problem = build_problem(time_horizon=1.0)
        mpc = MpcController(problem, IterativeLQR(), settings)

        x = problem.initial_state
        for k in range(n_cycles):
            mpc.run(x, 0.01 * k)

        stats = mpc.statistics
        mode = "cold" if cold else "warm"
        print(f"{mode:>8} {stats.mean_solve_time*1000:>12.2f} "
              f"{stats.max_solve_time*1000:>12.2f} {stats.num_failures:>10}")


if __name__ == "__main__":
    benchmark_loop()
    benchmark_cold_vs_warm()
