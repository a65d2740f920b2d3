"""
Pricing Kernel

Domain core for contract-rate pricing in sales and purchase order entry:
- Contract rate entries, catalogs and rate resolution results
- Override requests, decisions and the append-only audit record
- Order lines, derived totals and the order editing session
- Structured logging, typed exceptions and audit persistence
"""

__version__ = "0.1.0"
