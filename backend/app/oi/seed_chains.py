"""Seed spot prices and chain parameters for the option-chain simulator."""

# Starting index levels for the default underlyings
SEED_SPOTS: dict[str, float] = {
    "NIFTY": 22000.00,
    "BANKNIFTY": 48000.00,
    "FINNIFTY": 21500.00,
    "MIDCPNIFTY": 11000.00,
    "SENSEX": 73000.00,
}

# Distance between listed strikes
STRIKE_STEPS: dict[str, int] = {
    "NIFTY": 50,
    "BANKNIFTY": 100,
    "FINNIFTY": 50,
    "MIDCPNIFTY": 25,
    "SENSEX": 100,
}

# Per-underlying GBM parameters for the spot
# sigma: annualized volatility, mu: annualized drift
SPOT_PARAMS: dict[str, dict[str, float]] = {
    "NIFTY": {"sigma": 0.14, "mu": 0.08},
    "BANKNIFTY": {"sigma": 0.18, "mu": 0.08},
    "FINNIFTY": {"sigma": 0.17, "mu": 0.08},
    "MIDCPNIFTY": {"sigma": 0.22, "mu": 0.10},
    "SENSEX": {"sigma": 0.13, "mu": 0.08},
}

DEFAULT_PARAMS: dict[str, float] = {"sigma": 0.18, "mu": 0.08}

# Strikes listed on each side of the at-the-money strike
CHAIN_DEPTH = 20

# Open interest at the ATM strike; it falls off with distance from ATM
BASE_OI = 120_000
OI_DECAY_PER_STRIKE = 0.12

# Chance that a given strike/leg changes OI on one tick
OI_CHANGE_PROBABILITY = 0.3
OI_CHANGE_SCALE = 0.02  # std-dev of a change, as a fraction of current OI

# Implied volatility (percent) at the money, plus smile curvature per strike
BASE_IV = 13.0
IV_SMILE_PER_STRIKE = 0.15

DAYS_TO_EXPIRY = 7
