"""homefaerie: price-driven home heating automation."""

__version__ = "0.1.0"
