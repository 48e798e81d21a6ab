
class Theme:
    """
    Centralized source of truth for scene colors.
    """
    # Building
    HOUSE = "#D7CCC8"
    ROOF = "#FFFFFF"
    PARAPET = "#CCCCCC"
    CHIMNEY = "#232220"
    PIPE = "#767373"

    # Installations
    PLATFORM = "#E8E8E8"
    CONNECTOR = "#888888"
    PANEL_GLASS = "#1a1a2e"

    # Overlays
    NORTH_ARROW = "#FF1744"
    SUN = "#FFD740"
    SUN_RAY = "#FFE066"
