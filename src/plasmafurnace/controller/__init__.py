"""
The CONTROLLER layer turns configuration records into running simulations.
It owns the numerical engine (fea) and the workers that drive it.
"""
