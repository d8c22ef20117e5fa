"""
experiments/scenarios.py

Holds scenario definitions (decision variables) to sweep during experiments.
Add berth counts, ship mixes and arrival intensities here.
"""

from __future__ import annotations

BASELINE = {
    "name": "baseline",
    "overrides": {},  # override config keys here per scenario
}

TEN_BERTHS = {
    "name": "ten_berths",
    "overrides": {
        "harbour": {"num_berths": 10},
    },
}

SIX_BERTHS = {
    "name": "six_berths",
    "overrides": {
        "harbour": {"num_berths": 6},
    },
}

BUSY_SEASON = {
    "name": "busy_season",
    "overrides": {
        "harbour": {"arrival_mean": 2.0},
        "sim": {"seed": 100},
    },
}

SMALL_SHIPS = {
    "name": "small_ships",
    "overrides": {
        "harbour": {"ship_size": [1, 2]},
    },
}

SCENARIOS = [BASELINE, TEN_BERTHS, SIX_BERTHS, BUSY_SEASON, SMALL_SHIPS]
