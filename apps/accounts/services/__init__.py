from .family import (
    create_family_group,
    convert_individual_to_family,
    convert_family_to_individual,
    remove_member,
    CascadeChange,
    ConversionResult,
    FamilyGroupResult,
    RemovalResult,
)
from .registration import (
    register_member,
    register_coach,
    register_admin,
    update_member,
    find_member,
)

__all__ = [
    'create_family_group',
    'convert_individual_to_family',
    'convert_family_to_individual',
    'remove_member',
    'CascadeChange',
    'ConversionResult',
    'FamilyGroupResult',
    'RemovalResult',
    'register_member',
    'register_coach',
    'register_admin',
    'update_member',
    'find_member',
]
