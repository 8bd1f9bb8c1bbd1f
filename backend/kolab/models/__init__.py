"""
模型包：持久化对象 (ontology)、API 模式 (schemas)、领域事件 (events)
"""
