"""
Spotter - Hypertrophy Progression Coach

Internal Codename: SPOTTER
"Three to grow, one to know."

Turns logged sets into next-session decisions:
- Working-set snapshots and growth/diagnostic split
- Mesocycle phase and effective target RIR
- Rule cascade for load and set changes
- Personal records (best single-set volume)
- Forward propagation of plans into future sessions
"""

__version__ = "0.1.0"
