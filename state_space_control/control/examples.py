"""
Example usage of the controller core.

Run with: python -m state_space_control.control.examples
"""

import numpy as np


def example_mass_spring_damper():
    """
    Position control of a mass-spring-damper with an estimator.

    System: M*x'' + b*x' + k*x = u
    States: [position, velocity], only position is measured
    """
    from state_space_control.control import (
        Simulation,
        StateSpaceController,
        StateSpaceModel,
        lqr,
        observer_gains,
    )

    print("=" * 60)
    print("Mass-Spring-Damper Position Control")
    print("=" * 60)

    M, b, k = 1.0, 0.5, 10.0
    A = np.array([[0, 1], [-k / M, -b / M]])
    B = np.array([[0], [1 / M]])
    C = np.array([[1, 0]])

    model = StateSpaceModel(A, B, C)
    print(f"\nSystem: {model}")
    print(f"Open-loop poles: {model.poles}")

    ctrl = StateSpaceController(model)
    ctrl.K, _, E = lqr(A, B, np.diag([100.0, 1.0]), [[0.1]])
    ctrl.L = observer_gains(A, C, [-20, -25])
    ctrl.initialise()

    print(f"K = {ctrl.K}")
    print(f"Closed-loop poles: {E}")
    print(f"L = {ctrl.L.T}")
    print(f"N_bar = {ctrl.N_bar} ({ctrl.pseudo_inverse} inverse)")

    # Estimator starts at zero, the plant does not
    sim = Simulation(model, x0=[0.2, 0.0])
    ctrl.r = [1.0]

    dt = 0.001
    y = sim.output
    for _ in range(5000):
        u = ctrl.update(y, dt)
        y = sim.step(u, dt)

    print(f"\nAfter 5 s: y = {y}, x = {sim.x}, x_hat = {ctrl.x_hat}")
    return ctrl


def example_dc_motor_disturbance():
    """
    Velocity control of a DC motor against a constant load torque.

    Model: J*omega_dot + b*omega = Kt*i
    The load is not in the model; integral action removes the offset it causes.
    """
    from state_space_control.control import (
        Simulation,
        StateSpaceController,
        StateSpaceModel,
        integral_gain,
        lqr,
    )
    from state_space_control.research import ClosedLoopRunner

    print("\n" + "=" * 60)
    print("DC Motor Velocity Control with Load Disturbance")
    print("=" * 60)

    J, b, Kt = 0.01, 0.1, 0.5
    A = np.array([[-b / J]])
    B = np.array([[Kt / J]])
    C = np.array([[1.0]])
    model = StateSpaceModel(A, B, C)

    for ki in (0.0, 20.0):
        ctrl = StateSpaceController(model)
        ctrl.K, _, _ = lqr(A, B, [[10.0]], [[1.0]])
        ctrl.L = [[50.0]]
        ctrl.I = integral_gain(1, 1, ki)
        ctrl.initialise()
        ctrl.r = [10.0]

        runner = ClosedLoopRunner(ctrl, Simulation(model), dt=0.001, disturbance=[-1.0])
        runner.run(3.0)
        m = runner.metrics()[0]
        print(f"ki={ki:5.1f}: final omega = {runner.outputs()[-1, 0]:.4f}, "
              f"steady-state error = {m.steady_state_error:.4f}")


def example_over_actuated():
    """
    Two actuators driving one measured output: fewer outputs than inputs,
    so N_bar comes from the right pseudo-inverse.
    """
    from state_space_control.control import StateSpaceController, StateSpaceModel

    print("\n" + "=" * 60)
    print("Over-Actuated Plant (U=2, Y=1)")
    print("=" * 60)

    A = np.array([[-1.0]])
    B = np.array([[1.0, 0.5]])
    C = np.array([[1.0]])
    model = StateSpaceModel(A, B, C)

    ctrl = StateSpaceController(model)
    ctrl.initialise()

    u_ss = ctrl.N_bar @ np.array([1.0])
    y_ss = C @ (-np.linalg.solve(A, B)) @ u_ss
    print(f"N_bar = {ctrl.N_bar.T} ({ctrl.pseudo_inverse} inverse)")
    print(f"Steady-state output for r=1: {y_ss}")


if __name__ == "__main__":
    example_mass_spring_damper()
    example_dc_motor_disturbance()
    example_over_actuated()

    print("\n" + "=" * 60)
    print("Examples complete!")
    print("=" * 60)
