"""Message Domain Model

对话历史的一轮（用户输入 + 回复），message 类型的 Artifact 来源指向其 id。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Message(BaseModel):
    """对话消息"""

    id: int = Field(description="自增 ID")
    user_text: str = Field(description="用户输入")
    bot_reply: str = Field(description="回复内容")
    created_at: datetime = Field(description="创建时间")
