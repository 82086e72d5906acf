"""HTTP surface for the Dou Dizhu arena."""
