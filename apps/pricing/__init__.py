"""Pricing app package.

Wraps the framework-free RateCalculator with the exchange-rate table,
hotel tax regions from the catalog and the public quote endpoint.
"""
