"""Path resolution, markdown rendering and directory listings."""
