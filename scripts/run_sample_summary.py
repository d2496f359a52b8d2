from __future__ import annotations
import json
import os
from pathlib import Path
import sys

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root))

from gaitlab.config.modes import get_gait_mode_config  # noqa: E402
from gaitlab.pipeline.analysis import run_cycle_analysis  # noqa: E402
from gaitlab.pipeline.generators import generate_gait_recording, make_rng  # noqa: E402


def main():
    mode = os.getenv("GAIT_MODE", "walk")
    seed = int(os.getenv("GAIT_SEED", "7"))
    config = get_gait_mode_config(mode)
    rec = generate_gait_recording(duration_s=10.0, frame_rate=config.frame_rate, rng=make_rng(seed),
                                  config=config)
    res = run_cycle_analysis(rec, config, {"smooth": True})

    summary = {
        "mode": res["mode"],
        "statistics": res["statistics"],
        "pattern_quality": res["pattern"]["quality"],
        "rom": {
            joint: {
                "left_total_rom": r["analysis"]["left"]["total_rom"],
                "right_total_rom": r["analysis"]["right"]["total_rom"],
                "asymmetry": r["analysis"]["asymmetry"],
                "data_quality": r["analysis"]["data_quality"],
                "recommendations": r["recommendations"],
            }
            for joint, r in res["rom"].items()
        },
    }
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
