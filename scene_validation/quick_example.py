"""
Quick Example - stacking one box on another

Shows the simplest use: register two models once, then ask for many
candidate poses whether the scene is stable. The top box is raised in
small increments until it first rests on the base.

    python -m scene_validation.quick_example
"""

import logging

import numpy as np

from scene_validation import Pose, SceneValidator, box_mesh, print_validation_report

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def main():
    print("=" * 80)
    print(" Scene Validation - Quick Example")
    print("=" * 80)

    # 1. Register models (expensive, done once)
    print("\n[Step 1] Register models")
    validator = SceneValidator()
    base_vertices, base_faces = box_mesh(1.0, 1.0, 1.0)
    top_vertices, top_faces = box_mesh(0.6, 0.6, 0.6)
    validator.register_model("base", base_vertices, base_faces, scale=1.0)
    validator.register_model("top", top_vertices, top_faces, scale=1.0)
    validator.set_param("THRESHOLD", 0.04)

    # 2. Search for the lowest stable height of the top box
    print("\n[Step 2] Raise 'top' until the scene is stable")
    names = ["base", "top"]
    base_pose = Pose.identity((0.0, 0.0, 0.5))
    found = None
    for z in np.arange(1.0, 2.5, 0.01):
        top_pose = Pose.identity((0.0, 0.0, float(z)))
        if validator.is_valid_scene(names, [base_pose, top_pose]):
            found = float(z)
            break

    # 3. Result
    print("\n[Step 3] Result")
    if found is None:
        print("  No stable height found")
    else:
        print(f"  'top' first rests at z = {found:.2f}")
        print_validation_report(validator.last_report)

    validator.close()


if __name__ == '__main__':
    main()
