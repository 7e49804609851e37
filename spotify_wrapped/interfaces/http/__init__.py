"""HTTP interface: blueprints and error rendering."""
