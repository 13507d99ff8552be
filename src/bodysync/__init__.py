# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
多流同步与姿态特征提取系统

将手机姿态传感器、骨架跟踪和人工标注三路独立数据流同步为一路合并帧，
提取滑动窗口统计特征，并在线拟合从传感器特征到身体姿态的线性模型。
"""

__version__ = "0.1.0"
