import astropy.units as u
import numpy as np
from scipy.spatial.transform import Rotation as R

TWO_PI = 2 * np.pi


def wrap_angle(angle):
    """
    Wrap radian values into [0, 2pi)
    Args:
        angle (float or np.array):
            Angle(s) in radians
    Returns:
        float or np.array:
            Wrapped angle(s)
    """
    wrapped = np.mod(angle, TWO_PI)
    # np.mod can round up to exactly 2pi for tiny negative inputs
    return np.where(wrapped >= TWO_PI, 0.0, wrapped)


def body_rotation(axial_tilt, spin):
    """
    Rotation taking body-frame vectors to the system frame. The body first
    spins about its own z axis, then the spin axis is tilted about the y axis.
    Args:
        axial_tilt (float):
            Obliquity in radians
        spin (float):
            Rotation about the body's axis in radians
    Returns:
        scipy Rotation
    """
    return R.from_euler("zy", [spin, axial_tilt])


def orbit_basis(a, Omega, inc, w, e):
    """
    Perifocal basis vectors scaled by the orbit size, so that the relative
    position is A (cos E - e) + B sin E.
    Args:
        a (np.array):
            Semi-major axes in meters
        Omega (np.array):
            Longitudes of the ascending node in radians
        inc (np.array):
            Inclinations in radians
        w (np.array):
            Arguments of periapsis in radians
        e (np.array):
            Eccentricities
    Returns:
        A (np.array):
            3 x n stacked vectors along periapsis
        B (np.array):
            3 x n stacked vectors perpendicular to A in the orbital plane
    """
    sinw = np.sin(w)
    cosw = np.cos(w)
    sinO = np.sin(Omega)
    cosO = np.cos(Omega)
    sininc = np.sin(inc)
    cosinc = np.cos(inc)
    asqrt1me2 = a * np.sqrt(1 - e**2)

    A = np.vstack(
        (
            a * (cosO * cosw - sinO * cosinc * sinw),
            a * (sinO * cosw + cosO * cosinc * sinw),
            a * sininc * sinw,
        )
    )

    B = np.vstack(
        (
            -asqrt1me2 * (cosO * sinw + sinO * cosinc * cosw),
            asqrt1me2 * (-sinO * sinw + cosO * cosinc * cosw),
            asqrt1me2 * sininc * cosw,
        )
    )
    return A, B


def as_value(quantity, unit, name):
    """
    Strip the unit off a quantity after converting it, the error raised for
    incompatible units names the offending parameter.
    Args:
        quantity (astropy Quantity):
            Value to convert
        unit (astropy Unit):
            Target unit
        name (str):
            Parameter name for the error message
    Returns:
        float or np.array
    """
    if not isinstance(quantity, u.Quantity):
        raise u.UnitsError(f"{name} must be an astropy Quantity in {unit}, got {quantity!r}")
    try:
        return quantity.to_value(unit)
    except u.UnitConversionError as err:
        raise u.UnitConversionError(f"{name}: {err}") from err
