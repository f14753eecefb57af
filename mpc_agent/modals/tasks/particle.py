"""
PARTICLE - 2D point mass driven to a mocap goal

Residual (6): position error (2), velocity (2), control (2)
Modes:
- fixed: goal sits at (goal_x, goal_y)
- track: goal runs around a circle of track_radius at track_frequency Hz
"""

import math

import numpy as np

from ..task_modal import CostTerm, Task

PARTICLE_XML = """
<mujoco model="Particle">
  <option timestep="0.01"/>
  <worldbody>
    <body name="goal" mocap="true" pos="0.25 0 0.01">
      <geom type="sphere" size="0.01" contype="0" conaffinity="0" rgba="0 1 0 0.5"/>
    </body>
    <body name="pointmass" pos="0 0 0.01">
      <joint name="root_x" type="slide" axis="1 0 0"/>
      <joint name="root_y" type="slide" axis="0 1 0"/>
      <geom name="pointmass" type="sphere" size="0.01" mass="0.3" contype="0" conaffinity="0"/>
    </body>
  </worldbody>
  <actuator>
    <motor name="x_motor" joint="root_x" gear="1" ctrllimited="true" ctrlrange="-1 1"/>
    <motor name="y_motor" joint="root_y" gear="1" ctrllimited="true" ctrlrange="-1 1"/>
  </actuator>
  <sensor>
    <user name="position" dim="2" needstage="acc"/>
    <user name="velocity" dim="2" needstage="acc"/>
    <user name="control" dim="2" needstage="acc"/>
  </sensor>
  <keyframe>
    <key name="home" qpos="0 0" mpos="0.25 0 0.01"/>
  </keyframe>
</mujoco>
"""


class Particle(Task):
    name = "Particle"
    modes = ("fixed", "track")
    default_parameters = {
        "goal_x": 0.25,
        "goal_y": 0.0,
        "track_radius": 0.25,
        "track_frequency": 0.25,
    }

    def xml(self) -> str:
        return PARTICLE_XML

    def cost_terms(self):
        return [
            CostTerm("position", dim=2, weight=5.0),
            CostTerm("velocity", dim=2, weight=0.1),
            CostTerm("control", dim=2, weight=0.1),
        ]

    def residual(self, model, data, out):
        out[0:2] = data.qpos[0:2] - data.mocap_pos[0, 0:2]
        out[2:4] = data.qvel[0:2]
        out[4:6] = data.ctrl[0:2]

    def transition(self, model, data):
        if self.mode_name == "fixed":
            goal = (self.parameters["goal_x"], self.parameters["goal_y"])
        else:
            radius = self.parameters["track_radius"]
            phase = 2.0 * math.pi * self.parameters["track_frequency"] * data.time
            goal = (radius * math.cos(phase), radius * math.sin(phase))
        data.mocap_pos[0, 0:2] = np.asarray(goal)
