"""HTTP trigger and query contract."""
