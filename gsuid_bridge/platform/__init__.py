"""宿主聊天平台接口。"""
