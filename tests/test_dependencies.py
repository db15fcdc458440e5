import importlib

import pytest


DEPENDENCIES = [
    ("pandas", "pandas", "Data loading, cleaning and aggregation"),
    ("numpy", "numpy", "Seeded sampling and numeric helpers"),
    ("sklearn", "scikit-learn", "Linear regression, train/test split and metrics"),
    ("seaborn", "seaborn", "Plot styling in plot_generation.py"),
    ("matplotlib", "matplotlib", "Plot saving"),
]


@pytest.mark.parametrize("module_name,pip_name,reason", DEPENDENCIES)
def test_core_dependencies_installed(module_name: str, pip_name: str, reason: str) -> None:
    """
    Fail early when a required dependency is missing so the scripts don't break later.
    """
    try:
        importlib.import_module(module_name)
    except Exception as exc:  # pragma: no cover - triggers only when missing/broken
        pytest.fail(
            f"Missing or broken dependency '{module_name}' ({reason}). "
            f"Install with `python3 -m pip install {pip_name}`. "
            f"Import error: {exc}"
        )
