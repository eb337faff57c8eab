"""
Voucher Kernel

Persistence, domain types and services for the disbursement voucher
approval workflow:
- Sequential multi-office approval chains keyed by creator role
- Derived (never stored) current reviewer
- Append-only audit trail
- Best-effort, deduplicated workflow notifications
"""

__version__ = "0.1.0"
