import logging
from dataclasses import dataclass, fields
from typing import Optional

import astropy.units as u
import numpy as np
import pandas as pd

from planetary_dynamics.entity import BodyId
from planetary_dynamics.errors import (
    InvalidId,
    InvalidOrbitalParameters,
    InvariantViolation,
)
from planetary_dynamics.orbits.kepler import orbital_period
from planetary_dynamics.util.misc import as_value, wrap_angle

logger = logging.getLogger(__name__)

ORBIT_KEYS = ("a", "e", "inc", "W", "w", "M0")


@dataclass(frozen=True)
class OrbitalState:
    """
    Snapshot of one body's orbit, with units attached
    """

    semi_major_axis: u.Quantity
    eccentricity: float
    inclination: u.Quantity
    longitude_of_ascending_node: u.Quantity
    argument_of_periapsis: u.Quantity
    mean_anomaly_at_epoch: u.Quantity
    mean_anomaly: u.Quantity
    orbital_period: u.Quantity
    host_body: Optional[BodyId]

    def dump_params(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}


def validate_elements(a, e, mass=None):
    """
    Check raw SI orbital elements before they reach the tables
    Args:
        a (float):
            Semi-major axis in meters
        e (float):
            Eccentricity
        mass (float):
            Body mass in kg
    Raises:
        InvalidOrbitalParameters
    """
    if not np.isfinite(a) or a <= 0:
        raise InvalidOrbitalParameters(f"semi-major axis must be positive, got {a} m")
    if not np.isfinite(e) or not 0 <= e < 1:
        raise InvalidOrbitalParameters(
            f"eccentricity must be in [0, 1) for a bound orbit, got {e}"
        )
    if mass is not None and (not np.isfinite(mass) or mass <= 0):
        raise InvalidOrbitalParameters(f"mass must be positive, got {mass} kg")


class OrbitalTable:
    """
    Columnar orbital state for every body in an EntityStore. All values are
    stored in SI (m, kg, s, rad) and converted back to quantities on the way
    out.
    """

    def __init__(self, store) -> None:
        self.store = store
        store.register_column("name", dtype=object, default="")
        store.register_column("mass")
        for key in ORBIT_KEYS:
            store.register_column(key)
        store.register_column("M")
        store.register_column("E")
        store.register_column("nu")
        store.register_column("r")
        # Period in seconds, zero for bodies without a host
        store.register_column("T")
        store.register_column("host", dtype=object, default=None)
        store.register_column("anchor", shape=(3,))
        store.register_column("position", shape=(3,))
        store.register_column("velocity", shape=(3,))

    def insert(self, body_id, body_dict):
        """
        Fill the orbital columns of a freshly allocated body
        Args:
            body_id (BodyId):
                The body being registered
            body_dict (dict):
                mass, optional name, host, position and the orbital elements
                a, e, inc, W, w, M0
        """
        store = self.store
        if "mass" not in body_dict:
            raise InvalidOrbitalParameters("mass is required")
        mass = as_value(body_dict["mass"], u.kg, "mass")
        if not np.isfinite(mass) or mass <= 0:
            raise InvalidOrbitalParameters(f"mass must be positive, got {mass} kg")

        host = body_dict.get("host")
        has_orbit = "a" in body_dict
        if host is None and has_orbit:
            raise InvalidOrbitalParameters(
                "orbital elements were given for a body without a host"
            )
        if host is not None and not has_orbit:
            raise InvalidOrbitalParameters(
                "a body with a host needs at least a semi-major axis 'a'"
            )

        store.set("name", body_id, body_dict.get("name", f"body{body_id.index}"))
        store.set("mass", body_id, mass)
        anchor = body_dict.get("position", np.zeros(3) * u.m)
        store.set("anchor", body_id, as_value(anchor, u.m, "position"))
        store.set("position", body_id, as_value(anchor, u.m, "position"))

        if has_orbit:
            a = as_value(body_dict["a"], u.m, "a")
            e = float(body_dict.get("e", 0.0))
            validate_elements(a, e)
            store.set("a", body_id, a)
            store.set("e", body_id, e)
            for key in ("inc", "W", "w", "M0"):
                angle = body_dict.get(key, 0 * u.rad)
                store.set(key, body_id, as_value(angle, u.rad, key))
            store.set("M", body_id, wrap_angle(store.get("M0", body_id)))
            self.set_host(body_id, host)

    def state(self, body_id):
        store = self.store
        slot = store.resolve(body_id)

        def col(name):
            return store.column(name)[slot]

        return OrbitalState(
            semi_major_axis=(col("a") * u.m).to(u.AU),
            eccentricity=float(col("e")),
            inclination=(col("inc") * u.rad).to(u.deg),
            longitude_of_ascending_node=(col("W") * u.rad).to(u.deg),
            argument_of_periapsis=(col("w") * u.rad).to(u.deg),
            mean_anomaly_at_epoch=(col("M0") * u.rad).to(u.deg),
            mean_anomaly=(col("M") * u.rad).to(u.deg),
            orbital_period=(col("T") * u.s).to(u.d),
            host_body=col("host"),
        )

    def is_orbiting(self, body_id):
        return self.store.get("host", body_id) is not None

    def ancestors(self, body_id):
        """
        Hosts of a body from its direct parent up to the root, walked
        iteratively. Raises InvariantViolation if the chain loops.
        """
        chain = []
        seen = {body_id}
        host = self.store.get("host", body_id)
        while host is not None:
            if host in seen:
                raise InvariantViolation(f"host cycle through {host!r}")
            seen.add(host)
            chain.append(host)
            try:
                host = self.store.get("host", host)
            except InvalidId as err:
                raise InvariantViolation(f"dangling host reference {host!r}") from err
        return chain

    def children(self, body_id):
        hosts = self.store.column("host").data
        return [
            self.store.id_at(slot)
            for slot in self.store.alive_slots()
            if hosts[slot] == body_id
        ]

    def set_host(self, body_id, host):
        """
        Attach a body to a new host (or detach it with host=None). The host
        must be alive, strictly heavier, and must not be the body itself or one
        of its descendants.
        Raises:
            InvalidId:
                body_id or host is not a living body
            InvalidOrbitalParameters:
                The assignment would break the host forest
        """
        store = self.store
        slot = store.resolve(body_id)
        if host is None:
            # Becomes a fixed root where it currently is
            store.column("anchor")[slot] = store.column("position")[slot]
            store.column("velocity")[slot] = 0.0
            store.column("host")[slot] = None
            store.column("T")[slot] = 0.0
            return

        host_slot = store.resolve(host)
        if host == body_id:
            raise InvalidOrbitalParameters(f"{body_id!r} cannot orbit itself")
        mass = store.column("mass")
        if not mass[host_slot] > mass[slot]:
            raise InvalidOrbitalParameters(
                f"host {host!r} ({mass[host_slot]:.4g} kg) must be heavier than "
                f"{body_id!r} ({mass[slot]:.4g} kg)"
            )
        if body_id in [host, *self.ancestors(host)]:
            raise InvalidOrbitalParameters(
                f"making {host!r} the host of {body_id!r} would create a cycle"
            )
        a = store.column("a")[slot]
        validate_elements(a, store.column("e")[slot])

        store.column("host")[slot] = host
        store.column("T")[slot] = (
            orbital_period(a * u.m, mass[host_slot] * u.kg, mass[slot] * u.kg)
            .to(u.s)
            .value
        )
        logger.debug("%r now orbits %r", body_id, host)

    def generations(self):
        """
        Split the living bodies into host-forest generations: roots first,
        then their direct children, and so on. Every body's host is in an
        earlier generation than the body itself.
        Returns:
            list of np.array:
                Slot indices per generation
        """
        store = self.store
        hosts = store.column("host").data
        alive = store.alive_slots()

        children = {}
        current = []
        for slot in alive:
            host = hosts[slot]
            if host is None:
                current.append(slot)
                continue
            try:
                host_slot = store.resolve(host)
            except InvalidId as err:
                raise InvariantViolation(
                    f"{store.id_at(slot)!r} has dangling host {host!r}"
                ) from err
            children.setdefault(host_slot, []).append(slot)

        generations = []
        placed = 0
        while current:
            generations.append(np.array(sorted(current), dtype=int))
            placed += len(current)
            current = [child for slot in current for child in children.get(slot, [])]

        if placed != len(alive):
            raise InvariantViolation(
                f"{len(alive) - placed} bodies are not reachable from a root body"
            )
        return generations

    def to_dataframe(self):
        """
        Table of the living bodies' orbits, one row per body
        """
        store = self.store
        slots = store.alive_slots()
        data = {
            "id": [store.id_at(slot) for slot in slots],
            "name": store.column("name").data[slots],
            "host": store.column("host").data[slots],
            "mass": store.column("mass").data[slots],
            "a": (store.column("a").data[slots] * u.m).to(u.AU).value,
            "e": store.column("e").data[slots],
            "inc": np.rad2deg(store.column("inc").data[slots]),
            "W": np.rad2deg(store.column("W").data[slots]),
            "w": np.rad2deg(store.column("w").data[slots]),
            "M": np.rad2deg(store.column("M").data[slots]),
            "T": (store.column("T").data[slots] * u.s).to(u.d).value,
        }
        positions = (store.column("position").data[slots] * u.m).to(u.AU).value
        for i, coord in enumerate(["x", "y", "z"]):
            data[coord] = positions[:, i]
        return pd.DataFrame(data)
