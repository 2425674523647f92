"""
Deals App - Vendors and their time-boxed offers.

Deal authoring lives outside this service; the claims core only reads
deal terms (price, deposit, expiry, vendor) and bumps the aggregate
claims counter when a claim's deposit is confirmed.
"""
