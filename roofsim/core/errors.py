from typing import Optional


class RoofSimError(Exception):
    """Base class for all simulator errors."""


class InvalidLocation(RoofSimError, ValueError):
    """Latitude/longitude outside the physical range."""

    def __init__(self, latitude: float, longitude: float):
        self.latitude = latitude
        self.longitude = longitude
        super().__init__(
            f"Invalid location: lat={latitude}, lon={longitude} "
            f"(expected -90..90 and -180..180)"
        )


class LayoutError(RoofSimError, ValueError):
    """
    Installation geometry that cannot be built.
    Carries the offending row (and installation, if known) so the UI can
    point at the row/connector combination at fault.
    """

    def __init__(self, message: str, row_index: Optional[int] = None,
                 installation_id: Optional[str] = None):
        self.row_index = row_index
        self.installation_id = installation_id
        where = []
        if installation_id is not None:
            where.append(f"installation '{installation_id}'")
        if row_index is not None:
            where.append(f"row {row_index}")
        prefix = f"[{', '.join(where)}] " if where else ""
        super().__init__(prefix + message)

    def for_installation(self, installation_id: str) -> "LayoutError":
        """Returns a copy tagged with the installation id."""
        msg = str(self)
        if self.installation_id is None and msg.startswith("["):
            msg = msg[msg.index("]") + 2:]
        return LayoutError(msg, row_index=self.row_index, installation_id=installation_id)


class OcclusionQueryUnavailable(RoofSimError, RuntimeError):
    """The scene cannot answer ray queries right now (e.g. not built yet)."""
