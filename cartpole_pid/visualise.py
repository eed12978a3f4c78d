import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation
from matplotlib.patches import Rectangle
import cartpole_pid.config as config

def plot_history(result, show=False):
    """
    Plots the pendulum angle against time and against the cart position
    from a SimulationResult.
    """
    angle_deg = np.degrees(result.x_states[:, 2])
    cart_x = result.x_states[:, 0]

    fig, axs = plt.subplots(1, 2, figsize=(12, 4.5))

    axs[0].plot(result.t, angle_deg, color='#1f77b4', linewidth=1.5)
    axs[0].axhline(0, color='gray', linestyle='--', linewidth=1.0)
    if result.failed.any():
        t_fail = result.t[np.argmax(result.failed)]
        axs[0].axvline(t_fail, color='#d62728', linestyle=':', label='Failure')
        axs[0].legend()
    axs[0].set_xlabel('Time (s)')
    axs[0].set_ylabel(r'Pendulum Angle $\theta$ (deg)')
    axs[0].set_title('Angle History')
    axs[0].grid(True, linestyle=':', alpha=0.7)

    axs[1].plot(cart_x, angle_deg, color='#ff7f0e', linewidth=1.2)
    axs[1].plot(cart_x[0], angle_deg[0], 'ro', markersize=6, label='Start')
    axs[1].set_xlabel('Cart Position $x$ (m)')
    axs[1].set_ylabel(r'Pendulum Angle $\theta$ (deg)')
    axs[1].set_title('Angle vs. Cart Position')
    axs[1].grid(True, linestyle=':', alpha=0.7)
    axs[1].legend()

    plt.tight_layout()
    if show:
        plt.show()
    return fig

def animate_pendulum(t, x_states, save_path=None, length=config.L, show=True):
    """
    Creates an animation of the cart-pendulum system from simulation data
    """

    num_frames_target = 300
    total_frames = len(t)
    animation_step = max(1, total_frames // num_frames_target)

    t_anim = t[::animation_step]
    x_states_anim = x_states[::animation_step, :]

    # Extract state data for plotting
    cart_x = x_states_anim[:, 0]
    pendulum_theta = x_states_anim[:, 2]
    frame_dt = np.mean(np.diff(t)) if len(t) > 1 else config.DT

    cart_width = 0.4
    cart_height = 0.2
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.set_xlim(-config.MAX_CART_POSITION - length, config.MAX_CART_POSITION + length)
    ax.set_ylim(-length * 1.5, length * 1.5)
    ax.set_aspect('equal')
    ax.grid()
    ax.axhline(0, color='gray', lw=2)
    cart_patch = Rectangle((0, 0), cart_width, cart_height, fc='royalblue', ec='black')
    ax.add_patch(cart_patch)
    line, = ax.plot([], [], 'o-', lw=2, color='black', markersize=6)
    time_text = ax.text(0.05, 0.9, '', transform=ax.transAxes)

    def init():
        cart_patch.set_xy((-cart_width / 2, -cart_height / 2))
        line.set_data([], [])
        time_text.set_text('')
        return cart_patch, line, time_text

    def update(frame):
        x = cart_x[frame]
        theta = pendulum_theta[frame]
        cart_patch.set_xy((x - cart_width / 2, -cart_height / 2))
        pivot_x = x
        pivot_y = cart_height / 2
        # theta = 0 points straight up
        bob_x = pivot_x + length * np.sin(theta)
        bob_y = pivot_y + length * np.cos(theta)
        line.set_data([pivot_x, bob_x], [pivot_y, bob_y])
        time_text.set_text(f'Time: {t_anim[frame]:.2f}s  Angle: {np.degrees(theta):.1f} deg')
        return cart_patch, line, time_text

    ani = FuncAnimation(
        fig,
        update,
        frames=len(t_anim),
        init_func=init,
        blit=True,
        interval=frame_dt * 1000 * animation_step,
        repeat=False
    )

    if save_path:
        print(f"Saving animation with {len(t_anim)} frames to {save_path}...")
        fps = max(1, int(1 / (frame_dt * animation_step)))
        ani.save(save_path, writer='pillow', fps=fps)
        print("Save complete.")

    plt.title("Inverted Pendulum PID Stabilization")
    plt.xlabel("Horizontal Position (m)")
    plt.ylabel("Vertical Position (m)")
    if show:
        plt.show()
    return ani
