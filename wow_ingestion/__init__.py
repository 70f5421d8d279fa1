"""
Auction-house ingestion for the World of Warcraft game-data API.

This package fetches connected-realm topology and auction listings on
message-bus triggers, stages them as CSV in S3, and notifies the warehouse
loader with a description of the load to run.
"""
