# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
几何工具

四元数运算、欧拉角换算、平面夹角和朝向融合。四元数统一按 (x, y, z, w) 存储。
"""

import math
from typing import Tuple

import numpy as np

IDENTITY_QUATERNION = np.array([0.0, 0.0, 0.0, 1.0])

# 设备坐标系中：从底部指向顶部的向量，以及垂直穿过屏幕的向量
DEVICE_UP = np.array([0.0, 1.0, 0.0])
DEVICE_THROUGH_DISPLAY = np.array([0.0, 0.0, -1.0])


def quaternion_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """四元数乘法 q1 * q2（不满足交换律）"""
    x1, y1, z1, w1 = q1
    x2, y2, z2, w2 = q2
    return np.array([
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
    ])


def quaternion_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """由旋转轴和角度（弧度）构造单位四元数"""
    axis = normalize(np.asarray(axis, dtype=np.float64))
    half = angle / 2.0
    return np.concatenate([axis * math.sin(half), [math.cos(half)]])


def quaternion_to_matrix(q: np.ndarray) -> np.ndarray:
    """单位四元数转3x3旋转矩阵（列向量约定：v' = R @ v）"""
    x, y, z, w = normalize(np.asarray(q, dtype=np.float64))
    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
    ])


def pitch_roll_yaw(q: np.ndarray) -> Tuple[float, float, float]:
    """由四元数计算 (pitch, roll, yaw)，单位弧度"""
    x, y, z, w = q
    pitch = math.atan2(2 * (y * z + w * x), w * w - x * x - y * y + z * z)
    roll = math.atan2(2 * (x * y + w * z), w * w + x * x - y * y - z * z)
    # asin的参数可能因浮点误差略微越界
    yaw = math.asin(max(-1.0, min(1.0, -2 * (x * z - w * y))))
    return pitch, roll, yaw


def normalize(v: np.ndarray) -> np.ndarray:
    """归一化向量，零向量原样返回"""
    norm = np.linalg.norm(v)
    if norm == 0.0:
        return v
    return v / norm


def plane_normal(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> np.ndarray:
    """三点确定的平面的法向量（未归一化）"""
    return np.cross(p2 - p1, p3 - p1)


def ccw_angle_between_planes(
    normal_upper: np.ndarray,
    normal_lower: np.ndarray,
    near_point: np.ndarray,
    far_point: np.ndarray
) -> float:
    """从上平面逆时针量到下平面的夹角

    两平面的交线由near_point和far_point给出（相对观察者一近一远），
    用来区分锐角和优角。

    Args:
        normal_upper: 上平面单位法向量
        normal_lower: 下平面单位法向量
        near_point: 交线上离观察者较近的点
        far_point: 交线上离观察者较远的点

    Returns:
        夹角，范围 [0, 2π]
    """
    dot = float(np.clip(np.dot(normal_upper, normal_lower), -1.0, 1.0))
    cross = np.cross(normal_upper, normal_lower)

    # 叉积方向（右手定则）决定角度是否超过π
    distance_to_near = float(np.sum((far_point - (near_point + cross)) ** 2))
    distance_to_far = float(np.sum((near_point - (far_point + cross)) ** 2))
    sign = -1.0 if distance_to_near < distance_to_far else 1.0

    return math.pi + sign * math.acos(dot)


def shoulder_orientation(shoulder_left: np.ndarray, shoulder_right: np.ndarray) -> float:
    """左肩指向右肩的向量投影到地面后的朝向角（相对相机）"""
    shoulder_vector = np.array(shoulder_right, dtype=np.float64) - shoulder_left
    return -math.atan2(shoulder_vector[2], shoulder_vector[0])


def logistic(x: float, steepness: float = 10.0, midpoint: float = 0.5) -> float:
    return 1.0 / (1.0 + math.exp(-steepness * (x - midpoint)))


def blend_heading(q: np.ndarray, steepness: float = 10.0, midpoint: float = 0.5) -> float:
    """由设备姿态估计人体朝向

    设备竖直时“底部→顶部”向量在地面上的投影很短，此时改用“穿过屏幕”向量
    的地面朝向。两者的地面朝向化为单位向量后按logistic权重线性混合，
    再取混合向量的角度，从而沿圆周较短的一侧过渡。

    Args:
        q: 设备姿态四元数
        steepness: logistic权重的陡峭程度
        midpoint: logistic权重的中点（投影长度）

    Returns:
        朝向角，范围 (-π, π]
    """
    rotation = quaternion_to_matrix(q)
    up = rotation @ DEVICE_UP
    through_display = rotation @ DEVICE_THROUGH_DISPLAY

    # 投影到地面：Z分量置0
    projected_length = math.hypot(up[0], up[1])
    weight = logistic(projected_length, steepness, midpoint)

    angle_up = math.atan2(up[1], up[0])
    angle_display = math.atan2(through_display[1], through_display[0])

    blended = weight * np.array([math.cos(angle_up), math.sin(angle_up)]) \
        + (1.0 - weight) * np.array([math.cos(angle_display), math.sin(angle_display)])

    if np.linalg.norm(blended) < 1e-9:
        return angle_up if weight >= 0.5 else angle_display
    return math.atan2(blended[1], blended[0])
