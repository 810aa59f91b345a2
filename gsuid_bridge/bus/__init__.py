"""消息总线事件。"""
