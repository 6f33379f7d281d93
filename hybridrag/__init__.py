"""
hybridrag - 面向知识库与邮件的混合检索、融合与重排核心
"""

__version__ = "0.1.0"
