"""Pure domain types for the voucher workflow (zero I/O)."""
