#!/usr/bin/env python3
"""
Example: Load an avatar, retarget its walk cycle and a batch of scene objects.
"""

import asyncio
import logging

import glbavatar


async def main():
    scene = glbavatar.Scene("demo")
    manager = glbavatar.ResourceManager(scene)

    avatar = await manager.load_my_avatar("avatars/robot.glb")
    print(f"Avatar: {avatar.name} at {avatar.position.round(3).tolist()}")

    try:
        animations = await manager.load_avatar_animations("animations/walk.glb")
    except glbavatar.ImporterError as e:
        print(f"\n❌ Animation import failed: {e}")
    else:
        for group in animations.animation_groups:
            print(f"Animation: {group.name} ({len(group.targeted_animations)} curves)")
            group.dispose()

    manager.add_scene_object_tasks("scene", "levels/", ["room.glb", "garden.glb"])
    for task in await manager.load_async():
        print(f"{task.url}: {task.task_state.value}")

    scene.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
    asyncio.run(main())
