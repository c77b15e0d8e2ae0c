"""vCloud session and inventory connectors."""
