"""
==============================================================================
Expo Scanner
==============================================================================

QR scanning for exhibition booths. Exhibitors open a per-exhibitor scanner
link, the device camera streams frames, and every decoded attendee QR
code is recorded against the exhibitor.

==============================================================================
"""

__version__ = "1.0.0"
