import argparse
import logging
import sys

from localizer import ConfigError, LocalizerError, LocalizerNode, build_settings, load_config
from localizer.config import log_level, replay_options
from localizer.geometry import euler_ypr
from localizer.services import FixService, LidarService, load_map

logger = logging.getLogger("localize")


def run_localization(cfg, num_scans=None):
    """Replay map, first fix and scans from the files named in *cfg*.

    Returns the node after shutdown so callers can inspect the final state.
    """
    settings = build_settings(cfg)
    point_width, sleep_s = replay_options(cfg)
    data_cfg = cfg.get("data", {}) or {}

    map_file = data_cfg.get("map_file")
    scan_file = data_cfg.get("scan_file")
    fix_file = data_cfg.get("fix_file")
    if not (map_file and scan_file and fix_file):
        raise ConfigError("data.map_file, data.scan_file and data.fix_file are required")
    if num_scans is None:
        num_scans = cfg.get("num_scans", None)

    node = LocalizerNode(settings)
    try:
        node.on_map(load_map(map_file, frame_id=settings.map_frame))
        fix = FixService(fix_file).first()
        if fix is not None:
            node.on_fix(fix)

        service = LidarService(
            scan_file,
            frame_id=settings.lidar_frame,
            point_width=point_width,
            sleep_s=sleep_s,
        )
        for scan in service.scans():
            record = node.on_scan(scan)
            logger.info("Scan: %d  x=%.3f y=%.3f z=%.3f yaw=%.4f",
                        record.id, record.x, record.y, record.z, record.yaw)
            if num_scans is not None and node.cnt >= num_scans:
                break
    except KeyboardInterrupt:
        logger.info("Stopping localization loop...")
    finally:
        node.shutdown()
    return node


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Localize LiDAR scans against a prior point-cloud map")
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to YAML configuration file (default: config.yaml)",
    )
    parser.add_argument("--num-scans", type=int, default=None,
                        help="Stop after this many scans")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("%s", exc)
        return 2

    try:
        level = log_level(cfg)
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("%s", exc)
        return 1

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        node = run_localization(cfg, num_scans=args.num_scans)
    except LocalizerError as exc:
        logger.error("%s", exc)
        return 1

    T = node.tracker.current_transform
    if T is not None:
        yaw, pitch, roll = euler_ypr(T[:3, :3])
        logger.info("final lidar pose: t=%s ypr=(%.4f, %.4f, %.4f)",
                    T[:3, 3].round(3).tolist(), yaw, pitch, roll)
    logger.info("mean fitness: %.6f",
                node.tracker.total_fitness / max(node.tracker.frame_count, 1))
    return 0


if __name__ == "__main__":
    sys.exit(main())
