"""
Photo Frame - Unattended Slideshow for Shared Photo Albums

Lists a shared Synology Photos or Immich album (or an FTP directory), prefetches
and composites each photo to fill the screen, and cross-fades between them.
"""

__version__ = "0.1.0"
