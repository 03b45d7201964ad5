"""
Stock Ledger Services
Reconciliation calculations and the data sources they read from
"""
