"""Loan amortization engine with extra payments and rate adjustments."""
