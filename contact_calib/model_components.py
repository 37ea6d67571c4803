from __future__ import annotations

import numpy as np

from contact_calib.contact import ContactElement
from contact_calib.model import Body, FootModel, Marker
from contact_calib.parameters import contact_name, marker_name
from contact_calib.settings import req_float, req_float_list, req_int, req_str


def contact_marker_locations(
    num_contacts: int,
    x_heel_m: float,
    x_toes_m: float,
    height_m: float,
) -> np.ndarray:
    """
    Evenly spaced contact points along the sole, heel to toes:
      x_i = x_heel + i / (n - 1) * (x_toes - x_heel)
    """
    if num_contacts < 1:
        raise ValueError('num_contacts must be >= 1.')
    if num_contacts == 1:
        xs = np.array([x_heel_m], dtype=float)
    else:
        xs = np.array(
            [x_heel_m + i / (num_contacts - 1) * (x_toes_m - x_heel_m) for i in range(num_contacts)],
            dtype=float,
        )
    return np.column_stack([xs, np.full(num_contacts, float(height_m))])


def build_bodies(config: dict) -> list[Body]:
    bodies: list[Body] = []
    for body_cfg in config['model']['bodies']:
        mass_kg = req_float(body_cfg, ['mass_kg'])
        if mass_kg < 0.0:
            raise ValueError(f"Body {body_cfg['name']} mass_kg must be >= 0.")
        bodies.append(
            Body(
                name=req_str(body_cfg, ['name']),
                mass_kg=mass_kg,
                parent=req_str(body_cfg, ['parent']),
                joint=req_str(body_cfg, ['joint']),
                location_in_parent_m=np.array(
                    req_float_list(body_cfg, ['location_in_parent_m'], length=2), dtype=float
                ),
            )
        )
    return bodies


def build_foot_model(config: dict) -> FootModel:
    """
    Build the foot-ground contact model:

      ground --planar-- calcn_r --pin-- toes_r ...
                          |
                          marker0 .. marker<n-1>, each with marker<i>_contact

    Contact markers are laid out heel to toes on contact.body. The returned
    model is not initialized; ContactObjective does that.
    """
    num_contacts = req_int(config, ['contact', 'num_contacts'])
    contact_body = req_str(config, ['contact', 'body'])

    stiffness = req_float(config, ['contact', 'stiffness_n_per_m'])
    if stiffness < 0.0:
        raise ValueError('contact.stiffness_n_per_m must be >= 0.')
    friction = req_float(config, ['contact', 'friction_coefficient'])
    v_scale = req_float(config, ['contact', 'velocity_scaling_mps'])
    if v_scale <= 0.0:
        raise ValueError('contact.velocity_scaling_mps must be > 0.')

    locations = contact_marker_locations(
        num_contacts,
        req_float(config, ['contact', 'x_heel_m']),
        req_float(config, ['contact', 'x_toes_m']),
        req_float(config, ['contact', 'marker_height_m']),
    )

    markers: list[Marker] = []
    contacts: list[ContactElement] = []
    for i in range(num_contacts):
        markers.append(Marker(name=marker_name(i), body=contact_body, location_m=locations[i].copy()))
        contacts.append(
            ContactElement(
                name=contact_name(i),
                marker=marker_name(i),
                stiffness_n_per_m=stiffness,
                friction_coefficient=friction,
                velocity_scaling_mps=v_scale,
            )
        )

    return FootModel(
        bodies=build_bodies(config),
        markers=markers,
        contacts=contacts,
        gravity_mps2=req_float(config, ['model', 'gravity_mps2']),
        ground_height_m=req_float(config, ['contact', 'ground_height_m']),
        fictitious_stiffness_n_per_m=req_float(config, ['contact', 'fictitious_stiffness_n_per_m']),
    )
