"""
Geometry engine: lattice parameters, fractional-coordinate matrices and
axis-alignment rotations.

Lattice matrices have the basis vectors a, b, c as columns. Rotations are
3x3 matrices applied as ``R @ v``.
"""

import logging
from typing import Tuple

import numpy as np

from castep_model_core.errors import GeometryError

logger = logging.getLogger(__name__)

X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])

# Rotations by smaller angles are skipped
ANGLE_TOLERANCE = 1e-12
# Relative threshold for degenerate lattices
DEGENERACY_TOLERANCE = 1e-10


def angle_between(u, v) -> float:
    """Angle in radians between two vectors. Zero-length vectors raise GeometryError."""
    u = np.asarray(u, dtype=float)
    v = np.asarray(v, dtype=float)
    if np.linalg.norm(u) == 0.0 or np.linalg.norm(v) == 0.0:
        raise GeometryError("Angle is undefined for a zero-length vector")
    return float(np.arctan2(np.linalg.norm(np.cross(u, v)), np.dot(u, v)))


def lattice_angles(matrix) -> Tuple[float, float, float]:
    a, b, c = np.asarray(matrix, dtype=float).T
    return angle_between(b, c), angle_between(a, c), angle_between(a, b)


def cos_sin_between(u, v) -> Tuple[float, float]:
    """
    Cosine and sine of the angle between two vectors, from the dot and cross
    products. Orthogonal vectors give exactly 0 and 1.
    """
    u = np.asarray(u, dtype=float)
    v = np.asarray(v, dtype=float)
    norms = np.linalg.norm(u) * np.linalg.norm(v)
    if norms == 0.0:
        raise GeometryError("Angle is undefined for a zero-length vector")
    return float(np.dot(u, v) / norms), float(np.linalg.norm(np.cross(u, v)) / norms)


def signed_volume(matrix) -> float:
    """Scalar triple product a . (b x c)."""
    a, b, c = np.asarray(matrix, dtype=float).T
    return float(np.dot(a, np.cross(b, c)))


def cartesian_construction_matrix(matrix) -> np.ndarray:
    """
    Upper-triangular matrix that builds cartesian coordinates from fractional
    ones for a lattice in canonical orientation (a along x, b in the xy-plane).

    Raises:
        GeometryError: If the basis has a zero-length vector, collinear a and b,
            or zero volume.
    """
    matrix = np.asarray(matrix, dtype=float)
    a, b, c = matrix.T
    len_a, len_b, len_c = np.linalg.norm(matrix, axis=0)
    cos_alpha, _ = cos_sin_between(b, c)
    cos_beta, _ = cos_sin_between(a, c)
    cos_gamma, sin_gamma = cos_sin_between(a, b)
    volume = signed_volume(matrix)

    scale = max(len_a, len_b, len_c)
    if abs(sin_gamma) < DEGENERACY_TOLERANCE:
        raise GeometryError("Lattice vectors a and b are collinear")
    if abs(volume) < DEGENERACY_TOLERANCE * scale ** 3:
        raise GeometryError(f"Lattice basis is degenerate (volume {volume:g})")

    return np.array([
        [len_a, len_b * cos_gamma, len_c * cos_beta],
        [0.0, len_b * sin_gamma, len_c * (cos_alpha - cos_beta * cos_gamma) / sin_gamma],
        [0.0, 0.0, volume / (len_a * len_b * sin_gamma)],
    ])


def fractional_matrix(matrix) -> np.ndarray:
    """
    Inverse of the cartesian construction matrix.

    For a lattice in canonical orientation, ``fractional_matrix(L) @ r`` is
    the fractional coordinate of the cartesian position ``r``.
    """
    construction = cartesian_construction_matrix(matrix)
    try:
        inverse = np.linalg.inv(construction)
    except np.linalg.LinAlgError as e:
        raise GeometryError(f"Fractional-coordinate matrix is singular: {e}") from e
    if not np.all(np.isfinite(inverse)):
        raise GeometryError("Fractional-coordinate matrix is not finite")
    return inverse


def rotation_matrix(axis, angle: float) -> np.ndarray:
    """Rotation by ``angle`` radians about the unit vector ``axis`` (Rodrigues' formula)."""
    x, y, z = np.asarray(axis, dtype=float)
    k = np.array([
        [0.0, -z, y],
        [z, 0.0, -x],
        [-y, x, 0.0],
    ])
    return np.eye(3) + np.sin(angle) * k + (1.0 - np.cos(angle)) * (k @ k)


def rotation_to_axis(vector, target) -> np.ndarray:
    """
    Rotation taking the direction of ``vector`` onto ``target``.

    The axis is the normalized cross product ``vector x target``. Already
    aligned vectors give the identity; anti-parallel ones rotate by pi about
    an axis perpendicular to ``vector``.
    """
    vector = np.asarray(vector, dtype=float)
    target = np.asarray(target, dtype=float)
    angle = angle_between(vector, target)
    if angle <= ANGLE_TOLERANCE:
        return np.eye(3)

    axis = np.cross(vector, target)
    norm = np.linalg.norm(axis)
    if norm <= ANGLE_TOLERANCE * np.linalg.norm(vector) * np.linalg.norm(target):
        # Anti-parallel: any perpendicular axis works
        helper = np.eye(3)[np.argmin(np.abs(vector))]
        axis = np.cross(vector, helper)
        norm = np.linalg.norm(axis)
    return rotation_matrix(axis / norm, angle)


def align_to_x_rotation(matrix) -> np.ndarray:
    """Rotation bringing lattice vector a onto the x-axis."""
    return rotation_to_axis(np.asarray(matrix, dtype=float)[:, 0], X_AXIS)


def align_to_y_rotation(matrix) -> np.ndarray:
    """Rotation bringing lattice vector b onto the y-axis."""
    return rotation_to_axis(np.asarray(matrix, dtype=float)[:, 1], Y_AXIS)


def canonical_rotation(matrix) -> np.ndarray:
    """
    Rotation into canonical orientation: a along +x, b in the xy-plane with
    positive y component.
    """
    matrix = np.asarray(matrix, dtype=float)
    first = align_to_x_rotation(matrix)
    b = first @ matrix[:, 1]
    phi = np.arctan2(b[2], b[1])
    if abs(phi) <= ANGLE_TOLERANCE:
        return first
    return rotation_matrix(X_AXIS, -phi) @ first


def cartesian_to_fractional_matrix(matrix) -> np.ndarray:
    """
    Matrix mapping cartesian positions to fractional coordinates for a
    lattice in any orientation.

    Positions are first rotated into the canonical frame, where the
    triangular fractional matrix applies. For a lattice that is already
    canonical the rotation is the identity.
    """
    return fractional_matrix(matrix) @ canonical_rotation(matrix)


def fractional_coordinates(matrix, cartesian) -> np.ndarray:
    """Fractional coordinates of an (N, 3) array of cartesian positions."""
    cartesian = np.asarray(cartesian, dtype=float).reshape(-1, 3)
    return cartesian @ cartesian_to_fractional_matrix(matrix).T


def cartesian_coordinates(matrix, fractional) -> np.ndarray:
    """Cartesian positions of an (N, 3) array of fractional coordinates."""
    fractional = np.asarray(fractional, dtype=float).reshape(-1, 3)
    return fractional @ np.asarray(matrix, dtype=float).T


def rotate_model(model, rotation: np.ndarray) -> None:
    """Rotate the lattice and every atom of ``model`` in place."""
    if model.lattice is not None:
        model.lattice.rotate(rotation)
    model.atoms.rotate(rotation)


def recompute_fractional(model) -> None:
    """Derive every atom's fractional coordinate from the current lattice."""
    if model.lattice is None:
        model.atoms.set_fractional(None)
        return
    model.atoms.set_fractional(fractional_coordinates(model.lattice.vectors, model.atoms.cartesian))


def align_a_to_x(model) -> bool:
    """
    Rotate ``model`` in place so lattice vector a lies along x.

    Returns:
        bool: False when a was already aligned and nothing was rotated.
    """
    rotation = align_to_x_rotation(model.lattice.vectors)
    if np.array_equal(rotation, np.eye(3)):
        return False
    rotate_model(model, rotation)
    logger.debug("Rotated model to align lattice vector a with the x-axis")
    return True


def align_b_to_y(model) -> bool:
    """Rotate ``model`` in place so lattice vector b lies along y."""
    rotation = align_to_y_rotation(model.lattice.vectors)
    if np.array_equal(rotation, np.eye(3)):
        return False
    rotate_model(model, rotation)
    logger.debug("Rotated model to align lattice vector b with the y-axis")
    return True


def align_to_canonical(model) -> bool:
    """Rotate ``model`` in place into canonical orientation (see canonical_rotation)."""
    rotated = align_a_to_x(model)
    b = model.lattice.vectors[:, 1]
    phi = np.arctan2(b[2], b[1])
    if abs(phi) > ANGLE_TOLERANCE:
        rotate_model(model, rotation_matrix(X_AXIS, -phi))
        logger.debug("Rotated model about x to bring lattice vector b into the xy-plane")
        rotated = True
    return rotated


def pairwise_distances(cartesian) -> np.ndarray:
    cartesian = np.asarray(cartesian, dtype=float).reshape(-1, 3)
    deltas = cartesian[:, None, :] - cartesian[None, :, :]
    return np.linalg.norm(deltas, axis=-1)
