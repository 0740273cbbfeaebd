"""
Central Configuration Module for PyLTI.

This module acts as the control center for the transfer function toolkit. It
contains the numerical tolerances, solver settings, analysis defaults, and
visualization preferences used throughout the core.
"""

CANCELLATION_PARAMS = {
    "digits": 6,
    "imag_tol": 1e-6,
}

APPROX_PARAMS = {
    "rtol": 1e-6,
    "atol": 0.0,
}

SIM_PARAMS = {
    "nb_time_points": 250,
    "closed_loop_nb_time_points": 100,
    "method": "DOP853",
    "rtol": 1e-8,
    "atol": 1e-8,
    "pre_zero_fraction": 0.05,
    "zero_offset": 1e-5,
    "dde_breakpoint_orders": 5,
    "dde_max_iterations": 8,
}

MARGIN_PARAMS = {
    "omega_guess": 0.001,
    "scan_decades": 7.0,
    "scan_points": 3500,
    "tol": 1e-12,
    "maxiter": 200,
}

ROOT_LOCUS_PARAMS = {
    "max_mag_Kc": 10.0,
    "nb_pts": 500,
    "log10_min_Kc": -6.0,
}

PLOT_PARAMS = {
    "figsize": (8, 5),
    "grid_alpha": 0.3,
    "bode_range": (-4.0, 4.0, 300),
    "nyquist_range": (-3.0, 3.0, 500),
    "pole_marker": {
        "marker": "x",
        "color": "black",
        "s": 80,
    },
    "zero_marker": {
        "marker": "o",
        "facecolors": "none",
        "edgecolors": "black",
        "s": 80,
    },
    "axis_style": {
        "color": "black",
        "lw": 1,
        "alpha": 0.5,
    },
}

LOGGING_PARAMS = {
    "level": "WARNING",
    "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
}

