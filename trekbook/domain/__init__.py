"""Booking lifecycle domain rules."""
