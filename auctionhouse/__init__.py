"""
auctionhouse

A client-side layer for on-chain auctions:
- English and All-Pay ascending auctions
- Linear, Exponential and Logarithmic Dutch auctions
- Sealed-bid Vickrey auctions (commit / reveal)
- Local tracking of created, bid-on and watched auctions
"""

__version__ = "0.1.0"
