"""Ticketbook: event ticket booking with a consistency-safe inventory engine."""
