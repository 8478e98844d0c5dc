"""Bill of supply calculation, layout and PDF rendering."""
