"""Controllers: business rules for each catalog operation."""
