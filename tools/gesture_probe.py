#!/usr/bin/env python3
"""Bench test: sweeps synthetic head poses and prints pose + gesture results."""

import argparse
import math

from refraction.config import load_config
from refraction.tracking.gesture import GestureThresholds, GestureWindow, classify
from refraction.tracking.pose import compute_pose
from refraction.tracking.synthetic import make_frame


def main():
    parser = argparse.ArgumentParser(description="Gesture classifier probe")
    parser.add_argument("--config", default="config.yaml")
    parser.add_argument("--seconds", type=float, default=4.0)
    parser.add_argument("--rate", type=float, default=30.0)
    parser.add_argument("--distance", type=float, default=1200.0)
    args = parser.parse_args()

    config = load_config(args.config)
    thresholds = GestureThresholds.formal(config.gesture)
    window = GestureWindow()
    window.open(deadline=args.seconds)

    print(f"Thresholds: {thresholds}")
    print("Sweeping nod (pitch) then turn (delta z)\n")

    frame_count = int(args.seconds * args.rate)
    half = frame_count // 2
    try:
        for i in range(frame_count):
            t = i / args.rate
            phase = 2 * math.pi * (i % half) / half
            if i < half:
                frame = make_frame(t, args.distance, pitch_deg=35.0 * math.sin(phase))
            else:
                frame = make_frame(t, args.distance, delta_z=0.04 * math.sin(phase))
            pose = compute_pose(frame)
            hits = classify(pose, thresholds)
            window.update(pose, thresholds)

            if hits or i % 10 == 0:
                names = ",".join(sorted(d.value for d in hits)) or "-"
                print(f"  t={t:5.2f}  pitch={pose.pitch_deg:6.1f}  dz={pose.delta_z:+.3f}  "
                      f"yaw={pose.yaw_deg:6.1f}  d={pose.distance_mm:6.0f}mm  hits={names}")
    except KeyboardInterrupt:
        pass
    finally:
        window.close()
        print(f"\nWindow flags: up={window.hit_up} down={window.hit_down} "
              f"left={window.hit_left} right={window.hit_right}")


if __name__ == "__main__":
    main()
