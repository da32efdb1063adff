#!/usr/bin/env python3
"""
词法单元定义
"""

from dataclasses import dataclass
from enum import Enum


class TokenKind(Enum):
    """词法单元种类"""
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    LITERAL = "literal"              # 数字、字符串、字符字面量
    PUNCTUATION = "punctuation"
    PREPROCESSOR = "preprocessor"    # 整个预处理行（含续行），不再细分
    COMMENT = "comment"


@dataclass(frozen=True)
class Token:
    """词法单元，start/end 为原始文本中的字符偏移"""
    kind: TokenKind
    text: str
    start: int
    end: int

    def is_punct(self, text: str) -> bool:
        return self.kind == TokenKind.PUNCTUATION and self.text == text

    def is_keyword(self, text: str) -> bool:
        return self.kind == TokenKind.KEYWORD and self.text == text

    @property
    def is_name(self) -> bool:
        return self.kind == TokenKind.IDENTIFIER

    def __str__(self):
        return f"{self.kind.value}:{self.text!r}@{self.start}"
