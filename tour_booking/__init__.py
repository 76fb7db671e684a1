"""Tour booking backend: booking lifecycle and ticket check-in."""
