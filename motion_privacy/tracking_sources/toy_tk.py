"""Tk sliders for head/hand poses plus a privacy control panel."""

from __future__ import annotations

import tkinter as tk
from typing import Callable, Optional

import numpy as np

from ..control.pose import Pose6D, TrackedJoint
from ..control.tracking_source import TrackingSource
from ..math3d.quaternion import euler_yaw_pitch_roll_to_q


class ToyTkTrackingSource(TrackingSource):
    """Debug source authored directly in world axes (x right, y up, z forward).

    Hands hang at a fixed offset from the head. The control panel is the
    profile selection surface: context, strength percent, enable toggle and
    recalibration.
    """

    def __init__(
        self,
        title: str,
        on_profile_change: Optional[Callable[[str, float], None]] = None,
        on_enabled_change: Optional[Callable[[bool], None]] = None,
        on_recalibrate: Optional[Callable[[], None]] = None,
        frame_ms: int = 33,
        initial_context: str = "casual",
        initial_strength: float = 0.0,
    ):
        self.root = tk.Tk()
        self.root.title(title)
        self.frame_ms = max(1, int(frame_ms))

        self._var_yaw = tk.DoubleVar(value=0.0)
        self._var_pitch = tk.DoubleVar(value=0.0)
        self._var_x = tk.DoubleVar(value=0.0)
        self._var_y = tk.DoubleVar(value=1.6)
        self._var_z = tk.DoubleVar(value=0.0)
        self._var_hands = tk.IntVar(value=1)
        self._var_context = tk.StringVar(value=initial_context)
        self._var_strength = tk.DoubleVar(value=initial_strength)
        self._var_enabled = tk.IntVar(value=1)

        self._on_profile_change = on_profile_change
        self._on_enabled_change = on_enabled_change
        self._on_recalibrate = on_recalibrate

        self._build_ui()

        self._on_tick = None
        self._closed = False
        self.root.protocol("WM_DELETE_WINDOW", self._handle_close)

    def _build_ui(self) -> None:
        def add_slider(label: str, var: tk.DoubleVar, lo: float, hi: float, res: float) -> None:
            tk.Label(self.root, text=label).pack(anchor="w", padx=10, pady=2)
            tk.Scale(
                self.root,
                from_=lo,
                to=hi,
                orient="horizontal",
                resolution=res,
                length=520,
                variable=var,
            ).pack(padx=10, pady=2)

        add_slider("Head yaw (deg)   [-180..180]", self._var_yaw, -180, 180, 1)
        add_slider("Head pitch (deg) [-89..89]", self._var_pitch, -89, 89, 1)
        add_slider("Head x (m)   [-1.5..1.5]", self._var_x, -1.5, 1.5, 0.01)
        add_slider("Head y (m)   [0..2.2]", self._var_y, 0.0, 2.2, 0.01)
        add_slider("Head z (m)   [-1.5..1.5]", self._var_z, -1.5, 1.5, 0.01)
        tk.Checkbutton(self.root, text="Hands tracked", variable=self._var_hands).pack(
            anchor="w", padx=10, pady=4
        )

        panel = tk.LabelFrame(self.root, text="Privacy")
        panel.pack(fill="x", padx=10, pady=6)
        for ctx in ("competitive", "casual"):
            tk.Radiobutton(panel, text=ctx.title(), value=ctx, variable=self._var_context).pack(
                side="left", padx=6
            )
        tk.Scale(
            panel,
            from_=0,
            to=100,
            orient="horizontal",
            resolution=1,
            length=200,
            label="Strength (%)",
            variable=self._var_strength,
        ).pack(side="left", padx=6)
        tk.Button(panel, text="Apply", command=self._apply_profile).pack(side="left", padx=6)
        tk.Checkbutton(
            panel, text="Enabled", variable=self._var_enabled, command=self._toggle_enabled
        ).pack(side="left", padx=6)
        tk.Button(panel, text="Recenter", command=self._recalibrate).pack(side="left", padx=6)

        self._stats = tk.Label(self.root, text="", justify="left", font=("Consolas", 10))
        self._stats.pack(padx=10, pady=8)

    def _apply_profile(self) -> None:
        if self._on_profile_change is not None:
            self._on_profile_change(self._var_context.get(), float(self._var_strength.get()))

    def _toggle_enabled(self) -> None:
        if self._on_enabled_change is not None:
            self._on_enabled_change(int(self._var_enabled.get()) == 1)

    def _recalibrate(self) -> None:
        if self._on_recalibrate is not None:
            self._on_recalibrate()

    def _handle_close(self) -> None:
        self._closed = True
        self.root.destroy()

    def _head_pose(self) -> Pose6D:
        return Pose6D(
            position=np.array(
                [float(self._var_x.get()), float(self._var_y.get()), float(self._var_z.get())],
                dtype=np.float64,
            ),
            quaternion=euler_yaw_pitch_roll_to_q(
                float(self._var_yaw.get()), float(self._var_pitch.get()), 0.0
            ),
        )

    def get_pose(self, joint: TrackedJoint) -> Pose6D | None:
        head = self._head_pose()
        if joint in (TrackedJoint.HEAD, TrackedJoint.EYE_GAZE):
            return head
        if int(self._var_hands.get()) != 1:
            return None
        side = -1.0 if joint is TrackedJoint.LEFT_HAND else 1.0
        return Pose6D(
            position=head.position + np.array([side * 0.25, -0.55, 0.3], dtype=np.float64),
            quaternion=head.quaternion.copy(),
        )

    def set_status(self, text: str) -> None:
        if not self._closed:
            self._stats.config(text=text)

    def run(self, on_tick):
        self._on_tick = on_tick
        self.root.after(self.frame_ms, self._tick)
        self.root.mainloop()

    def _tick(self) -> None:
        if self._closed:
            return
        if self._on_tick is not None:
            self._on_tick()
        self.root.after(self.frame_ms, self._tick)

    def stop(self) -> None:
        self.close()

    def close(self) -> None:
        if not self._closed:
            self._handle_close()
