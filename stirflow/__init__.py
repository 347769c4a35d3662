"""
Stir-Flow: real-time 2D incompressible fluid driven by point forces, using Taichi.

A stable-fluids solver (advection, forces, viscosity, pressure projection)
fed by pointer input or recorded multi-agent trajectories.
"""

__version__ = "0.1.0"
