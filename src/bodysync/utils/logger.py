"""TensorBoard日志系统"""

from pathlib import Path
from datetime import datetime

from torch.utils.tensorboard import SummaryWriter

from ..features.derived import CombinedFrame, SensorComparisonFrame


class TensorBoardLogger:
    """TensorBoard日志记录器

    可直接作为多路复用器的订阅者：每收到一个合并帧记录一组标量并前进一步。

    Args:
        log_dir: 日志目录
        experiment_name: 实验名称，None则使用时间戳
        log_interval: 每隔多少帧记录一次
    """

    def __init__(self, log_dir: str = './logs', experiment_name: str | None = None, log_interval: int = 1):
        if experiment_name is None:
            experiment_name = datetime.now().strftime('%Y%m%d_%H%M%S')
        if log_interval < 1:
            raise ValueError(f"记录间隔必须为正整数，当前为: {log_interval}")

        self.log_dir = Path(log_dir) / experiment_name
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.writer = SummaryWriter(log_dir=str(self.log_dir))
        self.step = 0
        self.log_interval = log_interval

        print(f"TensorBoard日志目录: {self.log_dir}")
        print(f"启动TensorBoard: tensorboard --logdir {log_dir}")

    def log_scalar(self, tag: str, value: float, step: int | None = None):
        """记录标量

        Args:
            tag: 标签名
            value: 标量值
            step: 步数，None则使用内部计数器
        """
        if step is None:
            step = self.step
        self.writer.add_scalar(tag, value, step)

    def log_scalars(self, main_tag: str, tag_scalar_dict: dict[str, float], step: int | None = None):
        """记录多个标量

        Args:
            main_tag: 主标签
            tag_scalar_dict: 标签-值字典
            step: 步数
        """
        if step is None:
            step = self.step
        self.writer.add_scalars(main_tag, tag_scalar_dict, step)

    def log_text(self, tag: str, text: str, step: int | None = None):
        """记录文本

        Args:
            tag: 标签名
            text: 文本内容
            step: 步数
        """
        if step is None:
            step = self.step
        self.writer.add_text(tag, text, step)

    def log_frame(self, frame: CombinedFrame):
        """记录一个三路合并帧的特征"""
        if self.step % self.log_interval == 0:
            sensor = frame.sensor_features
            self.log_scalar('sensor/heading', sensor.heading)
            self.log_scalars('sensor/rotation', {
                'pitch': sensor.rotation_x, 'roll': sensor.rotation_y, 'yaw': sensor.rotation_z,
            })
            self.log_scalars('sensor/std_dev', dict(zip(('pitch', 'roll', 'yaw'), sensor.std_devs.tolist())))
            self.log_scalars('sensor/energy', dict(zip(('pitch', 'roll', 'yaw'), sensor.energies.tolist())))
            self.log_scalars('skeleton', frame.skeleton_features.as_dict())
            self.log_scalars('learner', frame.learner_features.as_dict())
            self.log_scalar('learner/is_trained', float(frame.learner_features.is_trained))
            self.log_text('manual/posture', str(frame.raw_manual.body_posture))
        self.increment_step()

    def log_comparison_frame(self, frame: SensorComparisonFrame):
        """记录一个双传感器对比帧的特征"""
        if self.step % self.log_interval == 0:
            self.log_scalars('comparison/sensor1', frame.sensor_features1.as_dict())
            self.log_scalars('comparison/sensor2', frame.sensor_features2.as_dict())
        self.increment_step()

    def __call__(self, frame):
        if isinstance(frame, SensorComparisonFrame):
            self.log_comparison_frame(frame)
        else:
            self.log_frame(frame)

    def increment_step(self):
        """增加步数计数器"""
        self.step += 1

    def close(self):
        """关闭writer"""
        self.writer.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
