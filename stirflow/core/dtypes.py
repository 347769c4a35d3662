"""Type definitions for Stir-Flow.

Single precision keeps the per-frame passes fast on GPU; the solver only
needs visual, not physical, accuracy.
"""

import taichi as ti

# Default floating-point type for all fields and computations
DTYPE = ti.f32

# Smallest denominator used wherever a division could degenerate
EPSILON = 1e-6
