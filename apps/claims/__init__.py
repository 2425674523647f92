"""
Claims App - Deposit confirmation and in-store redemption.

A claim reserves a deal for a customer. Once its deposit is confirmed
(processor webhook, customer self-report or vendor confirmation) it gets
a one-time credential: an opaque QR code plus a 6-digit fallback code.
Vendor staff redeem that credential exactly once at the point of sale.
"""
