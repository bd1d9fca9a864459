"""领域层模型与协议。

包含：
- models: Part / Turn / GenerationRequest / GenerationResult 模型。
- conversation: HistoryStore 协议。
- events: 入站事件类型与 ChatChannel 协议。
- exceptions: 业务异常类型定义。
"""
