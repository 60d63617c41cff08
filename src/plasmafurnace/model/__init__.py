"""
The MODEL layer contains pure data structures: simulation configuration,
the material library, run progress and result persistence.
It holds no numerical methods of its own.
"""
