"""与 gsuid-core 的连接、路由和关联。"""
