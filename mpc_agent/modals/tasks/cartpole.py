"""
CARTPOLE - Swing the pole up and hold it over the cart

Residual (5): cart offset from cart_target (1), verticality cos(angle) - 1 (1),
velocity (2), control (1). The hinge angle is 0 with the pole UP; the home
keyframe hangs it down (pi).
"""

import math

from ..task_modal import CostTerm, Task

CARTPOLE_XML = """
<mujoco model="Cartpole">
  <option timestep="0.01"/>
  <worldbody>
    <body name="cart" pos="0 0 1">
      <joint name="slider" type="slide" axis="1 0 0" limited="true" range="-1.8 1.8"/>
      <geom name="cart" type="box" size="0.2 0.15 0.1" mass="1" contype="0" conaffinity="0"/>
      <body name="pole">
        <joint name="hinge" type="hinge" axis="0 1 0"/>
        <geom name="pole" type="capsule" fromto="0 0 0 0 0 1" size="0.045" mass="0.1" contype="0" conaffinity="0"/>
      </body>
    </body>
  </worldbody>
  <actuator>
    <motor name="slide" joint="slider" gear="10" ctrllimited="true" ctrlrange="-1 1"/>
  </actuator>
  <sensor>
    <user name="centered" dim="1" needstage="acc"/>
    <user name="vertical" dim="1" needstage="acc"/>
    <user name="velocity" dim="2" needstage="acc"/>
    <user name="control" dim="1" needstage="acc"/>
  </sensor>
  <keyframe>
    <key name="home" qpos="0 {pi}"/>
  </keyframe>
</mujoco>
""".replace("{pi}", repr(math.pi))


class Cartpole(Task):
    name = "Cartpole"
    default_parameters = {"cart_target": 0.0}

    def xml(self) -> str:
        return CARTPOLE_XML

    def cost_terms(self):
        return [
            CostTerm("centered", dim=1, weight=10.0),
            CostTerm("vertical", dim=1, weight=10.0),
            CostTerm("velocity", dim=2, weight=0.1),
            CostTerm("control", dim=1, weight=0.1),
        ]

    def residual(self, model, data, out):
        out[0] = data.qpos[0] - self.parameters["cart_target"]
        out[1] = math.cos(data.qpos[1]) - 1.0
        out[2:4] = data.qvel[0:2]
        out[4] = data.ctrl[0]
