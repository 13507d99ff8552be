"""主程序：三路数据流同步、特征提取与在线学习"""

import sys
import json
import logging
import random
import threading
import time
from pathlib import Path

import numpy as np
import torch
import yaml

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from bodysync.core.combiners import CombinedMultiplexer
from bodysync.core.data_simulator import DataSimulator
from bodysync.core.interpolation import InterpolationMethod
from bodysync.core.stream_worker import StreamWorker
from bodysync.utils.checkpoint import create_learner_from_checkpoint, save_learner_checkpoint
from bodysync.utils.config_manager import get_config, parse_args
from bodysync.utils.logger import TensorBoardLogger
from bodysync.utils.metrics import evaluate_predictions


def set_seed(seed: int):
    """设置随机种子以确保可复现性"""
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


class FrameCollector:
    """收集合并帧中的学习器输出和骨架观测值，用于事后评估"""

    def __init__(self):
        self.predictions = []
        self.observations = []
        self.trained_mask = []
        self.lock = threading.Lock()

    def __call__(self, frame):
        with self.lock:
            self.predictions.append(frame.learner_features.extract_values())
            skeleton = frame.skeleton_features
            self.observations.append([
                skeleton.left_leg_to_torso_angle,
                skeleton.right_leg_to_torso_angle,
                skeleton.shoulder_orientation,
            ])
            self.trained_mask.append(frame.learner_features.is_trained)

    def __len__(self):
        return len(self.predictions)

    def evaluate(self) -> dict | None:
        """只评估学习器已训练后的帧"""
        if not any(self.trained_mask):
            return None
        return evaluate_predictions(
            np.array(self.predictions), np.array(self.observations), np.array(self.trained_mask)
        )


def build_multiplexer(config: dict, clock=None) -> CombinedMultiplexer:
    """根据配置构建三路合并器

    Args:
        config: 配置字典
        clock: 毫秒时钟函数，None则使用单调时钟

    Returns:
        三路合并器
    """
    mux_config = config['multiplexer']
    offsets = mux_config.get('time_offsets_ms', {})
    heading_config = config.get('heading', {})

    learner = None
    ckpt_path = config['learner'].get('checkpoint')
    if ckpt_path:
        print(f"从checkpoint加载学习器: {ckpt_path}")
        learner = create_learner_from_checkpoint(ckpt_path)

    return CombinedMultiplexer(
        analysis_window_size=config['analyzer']['window_size'],
        sensor_time_offset_ms=offsets.get('sensor', 0.0),
        skeleton_time_offset_ms=offsets.get('skeleton', 0.0),
        manual_time_offset_ms=offsets.get('manual', 0.0),
        sampling_rate=config['analyzer'].get('sampling_rate', 30.0),
        learner=learner,
        num_learning_samples=config['learner']['num_learning_samples'],
        heading_steepness=heading_config.get('steepness', 10.0),
        heading_midpoint=heading_config.get('midpoint', 0.5),
        interpolation=InterpolationMethod.from_name(mux_config.get('interpolation', 'none')),
        interpolation_delay_ms=mux_config.get('interpolation_delay_ms', 30.0),
        clock=clock,
    )


def offline_simulation(config: dict, observers: list) -> tuple:
    """离线模式：一次性生成会话数据，按模拟时间顺序推入合并器

    时钟使用模拟时间，结果与运行速度无关。
    """
    simulator = DataSimulator(config['simulator'])
    duration_s = config['runtime'].get('duration_s', 60.0)

    sim_time = {'now_ms': 0.0}
    multiplexer = build_multiplexer(config, clock=lambda: sim_time['now_ms'])
    for observer in observers:
        multiplexer.subscribe(observer)

    events = simulator.generate_session(duration_s)
    print(f"离线模拟: {duration_s}s, {len(events)}个数据项")

    start = time.perf_counter()
    for t, stream_id, item in events:
        sim_time['now_ms'] = t * 1000.0
        multiplexer.push(stream_id, item)
    elapsed = time.perf_counter() - start

    print(f"处理完成: {multiplexer.frames_emitted}帧, 耗时{elapsed:.2f}s")

    return {
        'multiplexer': multiplexer.get_statistics(),
        'learner': multiplexer.learner.get_learning_stats(),
        'simulator': simulator.get_statistics(),
        'processing_time_s': elapsed,
    }, multiplexer


def realtime_simulation(config: dict, observers: list) -> tuple:
    """实时模式：每路流一个生产者线程，经由单写者工作线程推入合并器"""
    simulator = DataSimulator(config['simulator'])
    duration_s = config['runtime'].get('duration_s', 10.0)

    multiplexer = build_multiplexer(config)
    for observer in observers:
        multiplexer.subscribe(observer)

    worker = StreamWorker(multiplexer, max_queue_size=config['runtime'].get('max_queue_size', 0))
    worker.start()

    def produce(stream_id: int):
        for sid, item in simulator.simulate_realtime_stream([stream_id], duration_s):
            worker.post(sid, item)

    producers = [
        threading.Thread(target=produce, args=(stream_id,), name=f"producer-{stream_id}", daemon=True)
        for stream_id in (0, 1, 2)
    ]

    print(f"实时模拟: {duration_s}s, {len(producers)}个生产者线程")
    start = time.perf_counter()
    for producer in producers:
        producer.start()
    for producer in producers:
        producer.join()
    worker.stop()
    elapsed = time.perf_counter() - start

    print(f"处理完成: {multiplexer.frames_emitted}帧, 耗时{elapsed:.2f}s")

    return {
        'multiplexer': multiplexer.get_statistics(),
        'learner': multiplexer.learner.get_learning_stats(),
        'simulator': simulator.get_statistics(),
        'worker': worker.get_statistics(),
        'processing_time_s': elapsed,
    }, multiplexer


def _generate_artifacts(config: dict, log_dir: Path, stats: dict, metrics: dict | None):
    """写出机读工件：summary.json 和 config_snapshot.yaml"""
    log_dir.mkdir(parents=True, exist_ok=True)

    summary = {
        'experiment_info': {
            'mode': config['runtime'].get('mode', 'offline'),
            'timestamp': log_dir.name,
        },
        'statistics': stats,
        'evaluation': metrics if metrics else {'status': 'learner_not_trained'},
    }

    summary_file = log_dir / 'summary.json'
    with open(summary_file, 'w', encoding='utf-8') as f:
        json.dump(summary, f, indent=2, ensure_ascii=False, default=str)
    print(f"已生成: {summary_file}")

    config_file = log_dir / 'config_snapshot.yaml'
    with open(config_file, 'w', encoding='utf-8') as f:
        yaml.dump(config, f, default_flow_style=False, allow_unicode=True, indent=2)
    print(f"已生成: {config_file}")


def main(argv: list[str] | None = None):
    """主函数"""
    print("="*60)
    print("多流同步与姿态特征提取系统")
    print("="*60)

    args = parse_args(argv)
    config = get_config(args.config, args.overrides)
    print(f"配置文件: {args.config}")

    logging.basicConfig(
        level=getattr(logging, str(config['logging'].get('level', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )

    set_seed(config['runtime'].get('seed', 42))

    collector = FrameCollector()
    observers = [collector]

    tb_logger = None
    if config['logging'].get('tensorboard', {}).get('enabled', True):
        tb_logger = TensorBoardLogger(
            config['logging']['log_dir'],
            log_interval=config['logging'].get('tensorboard', {}).get('log_interval', 1)
        )
        observers.append(tb_logger)

    mode = config['runtime'].get('mode', 'offline')
    if mode == 'realtime':
        stats, multiplexer = realtime_simulation(config, observers)
    else:
        stats, multiplexer = offline_simulation(config, observers)

    metrics = collector.evaluate()
    if metrics:
        print(f"学习器评估 - MAE: {metrics['mae']:.4f}, MSE: {metrics['mse']:.4f}, "
              f"最大误差: {metrics['max_diff']:.4f}")
    else:
        print("学习器尚未训练，跳过评估")

    log_dir = tb_logger.log_dir if tb_logger else Path(config['logging']['log_dir'])

    if multiplexer.learner.is_trained and config['learner'].get('save_checkpoint', True):
        ckpt_file = save_learner_checkpoint(
            multiplexer.learner, log_dir / 'learner.pt', metadata={'config': config}
        )
        print(f"已保存学习器系数: {ckpt_file}")

    if config['logging'].get('write_summary', True):
        _generate_artifacts(config, log_dir, stats, metrics)

    if tb_logger:
        tb_logger.close()
        print(f"日志已保存到: {tb_logger.log_dir}")

    print("="*60)
    print("运行完成!")
    print("="*60)


if __name__ == "__main__":
    main()
