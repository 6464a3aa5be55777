"""
Momentum 异常定义模块。

定义系统中所有自定义异常的层次结构：
- MomentumError: 基类，所有已知错误
- ConfigError: 配置值非法
- ValidationError: 外部输入 (AI 解析结果) 不合法，需要用户修正
- StateError: 快照文件无法解析

NotFound / InsufficientData 不是异常：调用方拿到 None 或空列表。
锚点冲突也不是异常，而是 conflict_resolver 返回的结构化结果。
"""
from typing import Iterable, Optional


class MomentumError(Exception):
    """Momentum 基础异常类。

    所有系统内已知错误都继承自此类。
    捕获此类可以处理所有预期的错误情况。
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        """
        Args:
            message: 错误描述
            hint: 对用户的操作建议
        """
        super().__init__(message)
        self.message = message
        self.hint = hint

    def get_user_message(self) -> str:
        """返回用户友好的错误消息。"""
        if self.hint:
            return f"{self.message}\n💡 建议: {self.hint}"
        return self.message


class ConfigError(MomentumError):
    """配置错误。

    当运行时配置值超出允许范围时抛出。
    """

    def __init__(self, message: str, key: Optional[str] = None):
        hint = f"请检查配置项: {key}" if key else "请检查 config/runtime.yaml"
        super().__init__(message, hint)
        self.key = key


class ValidationError(MomentumError):
    """外部输入校验失败。"""


class UnknownAnchorError(ValidationError):
    """AI 解析出的锚点名称不在已知锚点列表中。"""

    def __init__(self, anchor_title: str, known_titles: Iterable[str] = ()):
        self.anchor_title = anchor_title
        self.known_titles = sorted(set(known_titles))
        message = f'Could not find an anchor named "{anchor_title}". Please check the name.'
        hint = None
        if self.known_titles:
            hint = "Known anchors: " + ", ".join(self.known_titles)
        super().__init__(message, hint)


class InvalidCandidateError(ValidationError):
    """AI 返回的结构化提醒无法解析或字段缺失。"""

    def __init__(self, message: str = "I had trouble understanding that. Could you try rephrasing?"):
        super().__init__(
            message,
            hint="e.g. 'Remind me to pack my gym bag 30 minutes before Gym Session'",
        )


class StateError(MomentumError):
    """状态快照相关错误。

    当快照文件无法解码时抛出。
    """

    def __init__(self, message: str, path: Optional[str] = None):
        hint = f"快照可能已损坏，建议检查 {path}" if path else "快照可能已损坏"
        super().__init__(message, hint)
        self.path = path
