"""Symbol codecs and coordinates."""
