"""Milestone-based funding workflows: escrow-backed crowdfunding and hackathon prize payouts."""

__version__ = "0.1.0"
