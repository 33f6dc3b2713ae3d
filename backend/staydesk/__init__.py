"""StayDesk: visit and short-stay booking lifecycle service."""
