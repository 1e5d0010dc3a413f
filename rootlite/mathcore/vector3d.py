"""
3D displacement vectors over interchangeable coordinate systems.

A ``DisplacementVector3D`` wraps one of ``Cartesian3D``,
``CylindricalEta3D`` or ``Polar3D``. Vectors in different systems can be
assigned to each other and combined; the result of a binary operation is
expressed in the system of the left operand.
"""

import math
import sys
from typing import Type, TypeVar, Union

# |z| offset used for eta when rho is exactly zero
BIG_Z_SCALED = sys.float_info.epsilon ** -0.25


def eta_from_rho_z(rho: float, z: float) -> float:
    """Pseudorapidity, finite even on the z axis."""
    if rho > 0:
        return math.asinh(z / rho)
    if z == 0:
        return 0.0
    return z + BIG_Z_SCALED if z > 0 else z - BIG_Z_SCALED


def _phi(x: float, y: float) -> float:
    return 0.0 if x == 0 and y == 0 else math.atan2(y, x)


class Coordinates3D:
    """Common accessors; subclasses store their own three numbers."""

    def x(self) -> float:
        raise NotImplementedError

    def y(self) -> float:
        raise NotImplementedError

    def z(self) -> float:
        raise NotImplementedError

    def rho(self) -> float:
        return math.hypot(self.x(), self.y())

    def r(self) -> float:
        return math.sqrt(self.mag2())

    def mag2(self) -> float:
        return self.x() ** 2 + self.y() ** 2 + self.z() ** 2

    def perp2(self) -> float:
        return self.x() ** 2 + self.y() ** 2

    def phi(self) -> float:
        return _phi(self.x(), self.y())

    def theta(self) -> float:
        rho, z = self.rho(), self.z()
        return 0.0 if rho == 0 and z == 0 else math.atan2(rho, z)

    def eta(self) -> float:
        return eta_from_rho_z(self.rho(), self.z())

    @classmethod
    def from_xyz(cls, x: float, y: float, z: float):
        raise NotImplementedError

    def scale(self, a: float):
        """Coordinates of the vector multiplied by ``a``."""
        return type(self).from_xyz(a * self.x(), a * self.y(), a * self.z())

    def values(self) -> tuple:
        raise NotImplementedError

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.values() == other.values()

    def __repr__(self) -> str:
        return f"{type(self).__name__}{self.values()}"


class Cartesian3D(Coordinates3D):
    """(x, y, z)"""

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self._x, self._y, self._z = float(x), float(y), float(z)

    def x(self) -> float:
        return self._x

    def y(self) -> float:
        return self._y

    def z(self) -> float:
        return self._z

    @classmethod
    def from_xyz(cls, x, y, z):
        return cls(x, y, z)

    def values(self) -> tuple:
        return (self._x, self._y, self._z)


class CylindricalEta3D(Coordinates3D):
    """(rho, eta, phi)"""

    def __init__(self, rho: float = 0.0, eta: float = 0.0, phi: float = 0.0):
        if rho < 0:
            raise ValueError(f"rho must be non-negative, got {rho}")
        self._rho, self._eta, self._phi = float(rho), float(eta), float(phi)

    def x(self) -> float:
        return self._rho * math.cos(self._phi)

    def y(self) -> float:
        return self._rho * math.sin(self._phi)

    def z(self) -> float:
        if self._rho > 0:
            return self._rho * math.sinh(self._eta)
        # inverse of the on-axis encoding in eta_from_rho_z
        if self._eta > 0:
            return self._eta - BIG_Z_SCALED
        if self._eta < 0:
            return self._eta + BIG_Z_SCALED
        return 0.0

    def rho(self) -> float:
        return self._rho

    def eta(self) -> float:
        return self._eta

    def phi(self) -> float:
        return self._phi

    @classmethod
    def from_xyz(cls, x, y, z):
        rho = math.hypot(x, y)
        return cls(rho, eta_from_rho_z(rho, z), _phi(x, y))

    def scale(self, a: float):
        if self._rho == 0:
            return super().scale(a)
        if a < 0:
            return CylindricalEta3D(-a * self._rho, -self._eta, _phi(-self.x(), -self.y()))
        return CylindricalEta3D(a * self._rho, self._eta, self._phi)

    def values(self) -> tuple:
        return (self._rho, self._eta, self._phi)


class Polar3D(Coordinates3D):
    """(r, theta, phi)"""

    def __init__(self, r: float = 0.0, theta: float = 0.0, phi: float = 0.0):
        if r < 0:
            raise ValueError(f"r must be non-negative, got {r}")
        self._r, self._theta, self._phi = float(r), float(theta), float(phi)

    def x(self) -> float:
        return self._r * math.sin(self._theta) * math.cos(self._phi)

    def y(self) -> float:
        return self._r * math.sin(self._theta) * math.sin(self._phi)

    def z(self) -> float:
        return self._r * math.cos(self._theta)

    def r(self) -> float:
        return self._r

    def theta(self) -> float:
        return self._theta

    def phi(self) -> float:
        return self._phi

    @classmethod
    def from_xyz(cls, x, y, z):
        rho = math.hypot(x, y)
        theta = 0.0 if rho == 0 and z == 0 else math.atan2(rho, z)
        return cls(math.sqrt(rho * rho + z * z), theta, _phi(x, y))

    def values(self) -> tuple:
        return (self._r, self._theta, self._phi)


C = TypeVar("C", bound=Coordinates3D)


class DisplacementVector3D:
    """
    A direction and magnitude in 3D space.

    Example:
        >>> v = DisplacementVector3D(Cartesian3D(1, 2, 3))
        >>> w = DisplacementVector3D(Polar3D(1, 0.5, 0.2))
        >>> (v + w).coordinates()   # still Cartesian3D
    """

    def __init__(self, coordinates: Coordinates3D):
        self._coords = coordinates

    @classmethod
    def cartesian(cls, x: float, y: float, z: float) -> "DisplacementVector3D":
        return cls(Cartesian3D(x, y, z))

    def coordinates(self) -> Coordinates3D:
        return self._coords

    @property
    def system(self) -> Type[Coordinates3D]:
        return type(self._coords)

    def x(self) -> float:
        return self._coords.x()

    def y(self) -> float:
        return self._coords.y()

    def z(self) -> float:
        return self._coords.z()

    def rho(self) -> float:
        return self._coords.rho()

    def eta(self) -> float:
        return self._coords.eta()

    def phi(self) -> float:
        return self._coords.phi()

    def theta(self) -> float:
        return self._coords.theta()

    def r(self) -> float:
        return self._coords.r()

    def mag(self) -> float:
        return self._coords.r()

    def mag2(self) -> float:
        return self._coords.mag2()

    def perp2(self) -> float:
        return self._coords.perp2()

    def _in_my_system(self, x: float, y: float, z: float) -> "DisplacementVector3D":
        return DisplacementVector3D(self.system.from_xyz(x, y, z))

    def to(self, system: Type[C]) -> "DisplacementVector3D":
        """Same vector expressed in another coordinate system."""
        return DisplacementVector3D(system.from_xyz(self.x(), self.y(), self.z()))

    def assign(self, other: "DisplacementVector3D") -> "DisplacementVector3D":
        """Take the value of ``other``, keeping this vector's system."""
        self._coords = self.system.from_xyz(other.x(), other.y(), other.z())
        return self

    def dot(self, other: "DisplacementVector3D") -> float:
        return self.x() * other.x() + self.y() * other.y() + self.z() * other.z()

    def cross(self, other: "DisplacementVector3D") -> "DisplacementVector3D":
        ax, ay, az = self.x(), self.y(), self.z()
        bx, by, bz = other.x(), other.y(), other.z()
        return self._in_my_system(ay * bz - az * by, az * bx - ax * bz, ax * by - ay * bx)

    def unit(self) -> "DisplacementVector3D":
        """Unit vector; the zero vector is returned unchanged."""
        mag = self.mag()
        return self / mag if mag > 0 else DisplacementVector3D(self._coords)

    def __add__(self, other: "DisplacementVector3D") -> "DisplacementVector3D":
        return self._in_my_system(self.x() + other.x(), self.y() + other.y(), self.z() + other.z())

    def __sub__(self, other: "DisplacementVector3D") -> "DisplacementVector3D":
        return self._in_my_system(self.x() - other.x(), self.y() - other.y(), self.z() - other.z())

    def __iadd__(self, other: "DisplacementVector3D") -> "DisplacementVector3D":
        return self.assign(self + other)

    def __isub__(self, other: "DisplacementVector3D") -> "DisplacementVector3D":
        return self.assign(self - other)

    def __mul__(self, a: Union[int, float]) -> "DisplacementVector3D":
        if not isinstance(a, (int, float)):
            return NotImplemented
        return DisplacementVector3D(self._coords.scale(a))

    __rmul__ = __mul__

    def __truediv__(self, a: Union[int, float]) -> "DisplacementVector3D":
        if not isinstance(a, (int, float)):
            return NotImplemented
        return DisplacementVector3D(self._coords.scale(1.0 / a))

    def __neg__(self) -> "DisplacementVector3D":
        return self * -1.0

    def __eq__(self, other) -> bool:
        return isinstance(other, DisplacementVector3D) and self._coords == other._coords

    def __repr__(self) -> str:
        return f"DisplacementVector3D({self._coords!r})"
