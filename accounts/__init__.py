"""accounts/ -- Contact directory of password-less account records.

Layer rule: stdlib + third-party only. No imports from api/ or core/.
"""
