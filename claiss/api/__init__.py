"""HTTP surface: routes and dependency wiring."""
