"""Front-end modes for blemgr."""
