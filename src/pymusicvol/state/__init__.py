"""Volume/mute state layer.

This package is the single source of truth for what every dial should
currently display.  Rotation, the mute toggle, and reconciliation reads
are the only paths allowed to mutate it.
"""
