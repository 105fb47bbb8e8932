"""File formats: the PAK container and the rasters stored inside it."""
