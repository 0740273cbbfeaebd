"""
Centralized plotting utilities for PyLTI.
All visualization logic lives here to keep the core headless. The helpers
only consume what the core returns: time series, frequency responses,
zeros/poles and root-locus traces.
"""

import matplotlib.pyplot as plt
import numpy as np

from config import PLOT_PARAMS


def _finish(fig, savename, show):
    fig.tight_layout()
    if savename is not None:
        fig.savefig(savename)
    if show:
        plt.show()
    return fig


def _draw_axes(ax):
    ax.axhline(0, **PLOT_PARAMS["axis_style"])
    ax.axvline(0, **PLOT_PARAMS["axis_style"])


def plot_response(t, y, title="Response", savename=None, show=False):
    """Plots a simulated time series y(t)."""
    fig, ax = plt.subplots(figsize=PLOT_PARAMS["figsize"])
    ax.plot(t, y, "k-", lw=2)
    ax.axhline(0, **PLOT_PARAMS["axis_style"])
    ax.set_title(title)
    ax.set_xlabel("Time")
    ax.set_ylabel("Output")
    ax.grid(True, alpha=PLOT_PARAMS["grid_alpha"])
    return _finish(fig, savename, show)


def bode_plot(g, omega=None, savename=None, show=False):
    """
    Bode magnitude (dB) and phase (deg) of a transfer function.

    Args:
        g: TransferFunction (or any object with `frequency_response`).
        omega (array-like, optional): Frequencies; defaults to
            PLOT_PARAMS["bode_range"] as a log10 span.
    """
    if omega is None:
        lo, hi, n = PLOT_PARAMS["bode_range"]
        omega = np.logspace(lo, hi, n)

    resp = g.frequency_response(omega)
    mags = 20.0 * np.log10(np.abs(resp))
    phases = np.degrees(np.unwrap(np.angle(resp)))

    fig, (ax_mag, ax_phase) = plt.subplots(2, 1, sharex=True, figsize=PLOT_PARAMS["figsize"])

    ax_mag.semilogx(omega, mags, "k-", lw=2)
    ax_mag.axhline(0, **PLOT_PARAMS["axis_style"])
    ax_mag.set_ylabel("Magnitude (dB)")
    ax_mag.set_title("Bode Plot")
    ax_mag.grid(True, which="both", alpha=PLOT_PARAMS["grid_alpha"])

    ax_phase.semilogx(omega, phases, "k-", lw=2)
    ax_phase.axhline(-180, **PLOT_PARAMS["axis_style"])
    ax_phase.set_xlabel("Frequency (rad/time)")
    ax_phase.set_ylabel("Phase (deg)")
    ax_phase.grid(True, which="both", alpha=PLOT_PARAMS["grid_alpha"])

    return _finish(fig, savename, show)


def nyquist_plot(g, omega=None, savename=None, show=False):
    """Nyquist diagram of g(jw) for w > 0 and its mirror image, with the -1 point."""
    if omega is None:
        lo, hi, n = PLOT_PARAMS["nyquist_range"]
        omega = np.logspace(lo, hi, n)

    resp = g.frequency_response(omega)

    fig, ax = plt.subplots(figsize=PLOT_PARAMS["figsize"])
    ax.plot(resp.real, resp.imag, "b-", lw=2, label="w > 0")
    ax.plot(resp.real, -resp.imag, "b--", lw=1, label="w < 0")
    ax.scatter([-1.0], [0.0], marker="+", color="r", s=100, label="-1")
    _draw_axes(ax)
    ax.set_title("Nyquist Plot")
    ax.set_xlabel("Re")
    ax.set_ylabel("Im")
    ax.grid(True, alpha=PLOT_PARAMS["grid_alpha"])
    ax.legend()
    return _finish(fig, savename, show)


def pole_zero_plot(g, savename=None, show=False):
    """Pole-Zero Map (S-Plane): poles as crosses, zeros as open circles."""
    zeros = np.asarray(g.zeros(), dtype=complex)
    poles = np.asarray(g.poles(), dtype=complex)

    fig, ax = plt.subplots(figsize=PLOT_PARAMS["figsize"])
    if poles.size > 0:
        ax.scatter(poles.real, poles.imag, label="Poles", **PLOT_PARAMS["pole_marker"])
    if zeros.size > 0:
        ax.scatter(zeros.real, zeros.imag, label="Zeros", **PLOT_PARAMS["zero_marker"])
    _draw_axes(ax)
    ax.set_title("Pole-Zero Map (S-Plane)")
    ax.set_xlabel("Real")
    ax.set_ylabel("Imaginary")
    ax.grid(True, alpha=PLOT_PARAMS["grid_alpha"])
    if poles.size > 0 or zeros.size > 0:
        ax.legend()
    return _finish(fig, savename, show)


def root_locus_plot(Kcs, rloc, g_ol=None, savename=None, show=False):
    """
    Draws each branch (column) of a root-locus trace, colored by gain.

    Args:
        Kcs (np.ndarray): Gains, as returned by `root_locus`.
        rloc (np.ndarray): Complex roots, one row per gain.
        g_ol (optional): Open-loop transfer function whose zeros and poles
            are overlaid.
    """
    fig, ax = plt.subplots(figsize=PLOT_PARAMS["figsize"])

    for j in range(rloc.shape[1]):
        branch = rloc[:, j]
        ax.plot(branch.real, branch.imag, "-", color="gray", lw=1, zorder=1)
        sc = ax.scatter(
            branch.real, branch.imag, c=np.abs(Kcs), cmap="viridis", s=6, zorder=2
        )

    if rloc.shape[1] > 0:
        fig.colorbar(sc, ax=ax, label="|Kc|")

    if g_ol is not None:
        poles = np.asarray(g_ol.poles(), dtype=complex)
        zeros = np.asarray(g_ol.zeros(), dtype=complex)
        if poles.size > 0:
            ax.scatter(poles.real, poles.imag, zorder=3, **PLOT_PARAMS["pole_marker"])
        if zeros.size > 0:
            ax.scatter(zeros.real, zeros.imag, zorder=3, **PLOT_PARAMS["zero_marker"])

    _draw_axes(ax)
    ax.set_title("Root Locus")
    ax.set_xlabel("Real")
    ax.set_ylabel("Imaginary")
    ax.grid(True, alpha=PLOT_PARAMS["grid_alpha"])
    return _finish(fig, savename, show)
