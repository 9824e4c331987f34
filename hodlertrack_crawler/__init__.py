"""
HodlerTrack Crawler relays new on-chain transactions to the HodlerTrack relay.

Polls a subgraph for transaction pages in timestamp order, advances a
pagination cursor per processed page, and pushes each page as one event over
a persistent WebSocket connection that reconnects on its own. Modular layout:
subgraph fetcher, polling crawler, relay connection, runtime entrypoint.
"""

__version__ = "0.1.0"
