"""消息元素编解码。"""
