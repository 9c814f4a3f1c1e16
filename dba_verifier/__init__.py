"""
DBA Claim Verifier — Two-layer verification for signed business registry claims.

Architecture: Extract → Claim (genesis + signature) → Layer 1 (chain integrity)
              → Layer 2 (domain trust + live reconciliation) → Report
Philosophy:  A signature proves who said it. Only the live source proves it is still true.
"""

__version__ = "1.0.0"
