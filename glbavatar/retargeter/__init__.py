"""
Animation retargeting onto a reference mesh frame.
"""

from .animation_retargeting import (
    AnimationRetargeter,
    RETARGET_RULES,
    retarget,
    select_strategy,
)

__all__ = ['AnimationRetargeter', 'RETARGET_RULES', 'retarget', 'select_strategy']
