"""BookFinder - searchable INPX book catalogs."""
