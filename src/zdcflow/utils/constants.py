SIDES = ["A", "C"]
COORDS = ["X", "Y"]

N_SECTORS = 4
N_ITERATIONS = 5
N_STEPS = 5

# sector centres in cm, ZNA mirrors the x axis
PX_ZDC = [-1.75, 1.75, -1.75, 1.75]
PY_ZDC = [-1.75, -1.75, 1.75, 1.75]
ALPHA_ZDC = 0.395

CENTRALITY_MIN = 0.0
CENTRALITY_MAX = 90.0

MIN_ENTRIES_PER_BIN_DEFAULT = 100
MIN_ENTRIES_PER_AGGREGATE_DEFAULT = 1

# availability table coordinates for the iteration 0 tables
ENERGY_COORDINATE = (0, 0)
MEAN_VERTEX_COORDINATE = (0, 1)


def get_energy_names():
    """Names of the 10 tower mean energy tables, common tower first per side."""
    return [
        f"hZN{SIDES[0 if tower < 5 else 1]}_mean_t{tower % 5}_cent"
        for tower in range(10)
    ]


def get_recentering_names():
    """Names of the recentering tables per step slot, ordered QXA, QYA, QXC, QYC."""
    suffixes = [
        "mean_Cent_V_run",
        "mean_cent_run",
        "mean_vx_run",
        "mean_vy_run",
        "mean_vz_run",
    ]
    return [
        [f"hQ{coord}{side}_{suffix}" for side in SIDES for coord in COORDS]
        for suffix in suffixes
    ]


ENERGY_NAMES = get_energy_names()
RECENTERING_NAMES = get_recentering_names()
VERTEX_NAMES = ["hvertex_vx", "hvertex_vy"]
VERTEX_ACCUMULATOR_NAMES = ["hvertex_vx", "hvertex_vy", "hvertex_vz"]

CALIB_PREFIX = "ZDC/LHC23_zzh_pass4"
ENERGY_CALIBRATION_KEY_DEFAULT = f"{CALIB_PREFIX}/Energy"
MEAN_VERTEX_KEY_DEFAULT = f"{CALIB_PREFIX}/vmean"


def get_recentering_keys(iteration):
    return [f"{CALIB_PREFIX}/it{iteration}_step{step}" for step in range(1, 6)]
