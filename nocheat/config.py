import os

# === Model artifact ===
MODELS_DIR = os.environ.get("NOCHEAT_MODELS_DIR", "models")
MODEL_PATH = os.environ.get("NOCHEAT_MODEL_PATH", os.path.join(MODELS_DIR, "cheat_model.bin"))

# === Features ===
FEATURE_COLUMNS = ("hit_rate", "headshot_rate")
UINT32_MAX = 2**32 - 1

# === Heuristic thresholds ===
HIGH_HIT_RATE_THRESHOLD = float(os.environ.get("NOCHEAT_HIGH_HIT_RATE", "0.8"))
SUSPICIOUS_ACCURACY_THRESHOLD = 0.8
SUSPICIOUS_HEADSHOT_THRESHOLD = 0.7

# === Forest ===
N_ESTIMATORS = 100
MAX_DEPTH = 10
RANDOM_STATE = 42
