"""Mock vCloud REST daemon and its management CLI."""
