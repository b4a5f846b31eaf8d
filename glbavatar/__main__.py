#!/usr/bin/env python3
"""
Load an avatar (and optionally its animations) and print what was loaded.
"""

import argparse
import asyncio
import logging

from .config import LoaderConfig, load_config
from .resource import ResourceManager
from .scene import Scene


async def inspect_avatar(model_url: str, animation_url: str = None,
                         config: LoaderConfig = None) -> int:
    scene = Scene()
    manager = ResourceManager(scene, config)

    result = await manager.load_avatar_result(model_url)
    mesh = result.mesh
    print(f"\n{'='*60}")
    print(f"AVATAR: {model_url}")
    print(f"{'='*60}")
    if result.recovered:
        print(f"   Placeholder used: {result.error}")
    print(f"   Mesh: {mesh.name} (id {mesh.id})")
    print(f"   Position: {mesh.position.round(4).tolist()}")
    print(f"   Scene: {scene!r}")

    if animation_url:
        animations = await manager.load_avatar_animations(animation_url)
        print(f"\nANIMATIONS: {animation_url}")
        print(f"   Rig node: {animations.mesh.name}")
        for group in animations.animation_groups:
            print(f"   - {group.name}: {len(group.targeted_animations)} curves, "
                  f"{group.from_frame:.2f}s - {group.to_frame:.2f}s")
        for group in animations.animation_groups:
            group.dispose()

    scene.dispose()
    return 1 if result.recovered else 0


def main():
    parser = argparse.ArgumentParser(description='Load an avatar asset and summarize it')
    parser.add_argument('url', help='Avatar .glb/.gltf path or URL')
    parser.add_argument('--animations', help='Animation asset path or URL to retarget')
    parser.add_argument('--config', help='LoaderConfig JSON file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    args = parser.parse_args()

    # Setup logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )

    config = load_config(args.config) if args.config else None
    return asyncio.run(inspect_avatar(args.url, args.animations, config))


if __name__ == '__main__':
    exit(main())
