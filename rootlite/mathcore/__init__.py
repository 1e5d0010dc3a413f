"""
3D displacement vectors in Cartesian, cylindrical (rho, eta, phi) and
polar (r, theta, phi) coordinates.
"""

from .vector3d import Cartesian3D, CylindricalEta3D, DisplacementVector3D, Polar3D

__all__ = ["Cartesian3D", "CylindricalEta3D", "DisplacementVector3D", "Polar3D"]
