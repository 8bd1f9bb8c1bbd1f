"""
kolab_core - 共居物业管理核心层

与存储无关的纯函数与内存引擎，供应用层 (kolab) 调用：
- domain: 记录类型、房源目录、日期工具、冲突检测、客人识别、保洁任务推导
- engine: 事件总线
- sync: 乐观本地状态与存储确认的协调
- scheduler: 定时任务后端接口

架构原则:
    - 核心层不依赖 kolab 应用层
    - 纯函数对非法输入"失败即关闭"，不抛出异常
"""

__version__ = "1.0.0"
