"""Pre-processing: mesh, material model and torch descriptors."""
