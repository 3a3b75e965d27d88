"""Reservation slot allocation and lifecycle engine."""
