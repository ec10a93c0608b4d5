"""Normalization pipeline that imports raw enrichment-program records into the catalog."""
