#!/usr/bin/env python3
"""
词法扫描器 - 将C/C++源码切分为词法单元

扫描器是一个显式的状态机：
    NORMAL -> IN_STRING / IN_CHAR          遇到未转义的引号
    NORMAL -> IN_LINE_COMMENT              遇到 //，行尾返回 NORMAL
    NORMAL -> IN_BLOCK_COMMENT             遇到 /*，遇到 */ 返回 NORMAL（不支持嵌套）
    NORMAL -> IN_PREPROCESSOR_LINE         行首的 #，整条逻辑行（含反斜杠续行）作为一个单元

大括号深度不在这里统计，由声明提取器负责。
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Union

from .errors import ParseError
from .keywords import is_keyword
from .tokens import Token, TokenKind

logger = logging.getLogger(__name__)


class ScanState(Enum):
    """扫描器状态"""
    NORMAL = "normal"
    IN_LINE_COMMENT = "line_comment"
    IN_BLOCK_COMMENT = "block_comment"
    IN_STRING = "string"
    IN_CHAR = "char"
    IN_PREPROCESSOR_LINE = "preprocessor_line"


# 按长度从长到短排列，保证最长匹配
PUNCTUATORS = [
    '<<=', '>>=', '...', '->*', '<=>',
    '::', '->', '++', '--', '<<', '>>', '<=', '>=', '==', '!=', '&&', '||',
    '+=', '-=', '*=', '/=', '%=', '&=', '|=', '^=', '##', '.*',
]

# 可以出现在字符串/字符字面量之前的编码前缀
LITERAL_PREFIXES = {'L', 'u', 'U', 'u8', 'R', 'LR', 'uR', 'UR', 'u8R'}

IDENTIFIER_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
NUMBER_RE = re.compile(r"\.?[0-9](?:[eEpP][+-]|'[0-9A-Za-z]|[0-9A-Za-z_.])*")


@dataclass
class ScanResult:
    """扫描结果：原始文本与词法单元序列"""
    text: str
    tokens: List[Token] = field(default_factory=list)

    def significant(self) -> List[Token]:
        """去掉注释后的词法单元"""
        return [t for t in self.tokens if t.kind != TokenKind.COMMENT]


class Scanner:
    """C/C++ 词法扫描器"""

    def __init__(self, text: Union[str, bytes]):
        if isinstance(text, bytes):
            # 非UTF-8字节（例如注释中的Latin-1字符）原样保留，写回时还原
            text = text.decode('utf-8', errors='surrogateescape')
        self.text = text
        self.pos = 0
        self.state = ScanState.NORMAL
        self.at_line_start = True
        self.construct_start = 0
        self.tokens: List[Token] = []

    def scan(self) -> ScanResult:
        """
        扫描整个文本

        Returns:
            ScanResult

        Raises:
            ParseError: 字符串、字符字面量或块注释未闭合
        """
        handlers = {
            ScanState.NORMAL: self._scan_normal,
            ScanState.IN_LINE_COMMENT: self._scan_line_comment,
            ScanState.IN_BLOCK_COMMENT: self._scan_block_comment,
            ScanState.IN_STRING: self._scan_string,
            ScanState.IN_CHAR: self._scan_char,
            ScanState.IN_PREPROCESSOR_LINE: self._scan_preprocessor_line,
        }
        while self.pos < len(self.text) or self.state != ScanState.NORMAL:
            self.state = handlers[self.state]()
        logger.debug(f"扫描完成，共 {len(self.tokens)} 个词法单元")
        return ScanResult(self.text, self.tokens)

    def _emit(self, kind: TokenKind, start: int, end: int):
        self.tokens.append(Token(kind, self.text[start:end], start, end))

    def _scan_normal(self) -> ScanState:
        text = self.text
        ch = text[self.pos]

        if ch == '\n':
            self.at_line_start = True
            self.pos += 1
            return ScanState.NORMAL
        if ch.isspace():
            self.pos += 1
            return ScanState.NORMAL

        # 预处理行只能出现在行首
        if ch == '#' and self.at_line_start:
            self.construct_start = self.pos
            return ScanState.IN_PREPROCESSOR_LINE

        self.at_line_start = False
        self.construct_start = self.pos

        if text.startswith('//', self.pos):
            return ScanState.IN_LINE_COMMENT
        if text.startswith('/*', self.pos):
            return ScanState.IN_BLOCK_COMMENT
        if ch == '"':
            return ScanState.IN_STRING
        if ch == "'":
            return ScanState.IN_CHAR

        match = NUMBER_RE.match(text, self.pos)
        if match:
            self._emit(TokenKind.LITERAL, self.pos, match.end())
            self.pos = match.end()
            return ScanState.NORMAL

        match = IDENTIFIER_RE.match(text, self.pos)
        if match:
            word = match.group(0)
            end = match.end()
            # 带编码前缀的字面量，例如 L"abc"、u8'a'、R"(raw)"
            if word in LITERAL_PREFIXES and end < len(text) and text[end] in '"\'':
                self.pos = end
                return ScanState.IN_STRING if text[end] == '"' else ScanState.IN_CHAR
            kind = TokenKind.KEYWORD if is_keyword(word) else TokenKind.IDENTIFIER
            self._emit(kind, self.pos, end)
            self.pos = end
            return ScanState.NORMAL

        for punct in PUNCTUATORS:
            if text.startswith(punct, self.pos):
                self._emit(TokenKind.PUNCTUATION, self.pos, self.pos + len(punct))
                self.pos += len(punct)
                return ScanState.NORMAL

        self._emit(TokenKind.PUNCTUATION, self.pos, self.pos + 1)
        self.pos += 1
        return ScanState.NORMAL

    def _logical_line_end(self, start: int) -> int:
        """返回从start开始的逻辑行的结束位置（不含换行符），反斜杠续行会被合并"""
        text = self.text
        pos = start
        while True:
            newline = text.find('\n', pos)
            if newline == -1:
                return len(text)
            before = newline - 1
            if before >= start and text[before] == '\r':
                before -= 1
            if before >= start and text[before] == '\\':
                pos = newline + 1
                continue
            return newline

    def _scan_line_comment(self) -> ScanState:
        end = self._logical_line_end(self.pos)
        if end > self.construct_start and self.text[end - 1] == '\r':
            end -= 1
        self._emit(TokenKind.COMMENT, self.construct_start, end)
        self.pos = end
        return ScanState.NORMAL

    def _scan_block_comment(self) -> ScanState:
        close = self.text.find('*/', self.construct_start + 2)
        if close == -1:
            raise ParseError("未闭合的块注释", self.construct_start)
        self._emit(TokenKind.COMMENT, self.construct_start, close + 2)
        self.pos = close + 2
        return ScanState.NORMAL

    def _scan_preprocessor_line(self) -> ScanState:
        """
        预处理行到逻辑行结束为止；行内开始的块注释跨行时，指令延伸到注释结束

        字面量中的 /* 不算注释；行内未闭合的引号（例如 #error don't）按普通字符处理。
        """
        text = self.text
        pos = self.pos + 1
        while pos < len(text):
            ch = text[pos]
            if ch == '\\' and text.startswith('\n', pos + 1):
                pos += 2
            elif ch == '\\' and text.startswith('\r\n', pos + 1):
                pos += 3
            elif ch == '\n':
                break
            elif text.startswith('/*', pos):
                close = text.find('*/', pos + 2)
                if close == -1:
                    raise ParseError("未闭合的块注释", pos)
                pos = close + 2
            elif text.startswith('//', pos):
                pos = self._logical_line_end(pos)
            elif ch in '"\'':
                pos = self._directive_literal_end(pos)
            else:
                pos += 1
        end = pos
        if end > self.construct_start and text[end - 1] == '\r':
            end -= 1
        self._emit(TokenKind.PREPROCESSOR, self.construct_start, end)
        self.pos = end
        return ScanState.NORMAL

    def _directive_literal_end(self, start: int) -> int:
        """预处理行中以 text[start] 开始的字面量之后的位置；同一行内未闭合时只跳过引号"""
        text = self.text
        quote = text[start]
        pos = start + 1
        while pos < len(text) and text[pos] != '\n':
            if text[pos] == '\\':
                pos += 2
                continue
            if text[pos] == quote:
                return pos + 1
            pos += 1
        return start + 1

    def _scan_quoted(self, quote: str, what: str) -> ScanState:
        """扫描以 quote 结束的字面量，self.pos 指向开引号"""
        text = self.text
        pos = self.pos + 1
        while pos < len(text):
            ch = text[pos]
            if ch == '\\':
                pos += 2
                continue
            if ch == '\n':
                break
            if ch == quote:
                self._emit(TokenKind.LITERAL, self.construct_start, pos + 1)
                self.pos = pos + 1
                return ScanState.NORMAL
            pos += 1
        raise ParseError(f"未闭合的{what}", self.construct_start)

    def _scan_string(self) -> ScanState:
        prefix = self.text[self.construct_start:self.pos]
        if prefix.endswith('R'):
            return self._scan_raw_string()
        return self._scan_quoted('"', "字符串字面量")

    def _scan_raw_string(self) -> ScanState:
        text = self.text
        paren = text.find('(', self.pos + 1)
        if paren == -1:
            raise ParseError("未闭合的原始字符串字面量", self.construct_start)
        delimiter = text[self.pos + 1:paren]
        close = text.find(f'){delimiter}"', paren + 1)
        if close == -1:
            raise ParseError("未闭合的原始字符串字面量", self.construct_start)
        end = close + len(delimiter) + 2
        self._emit(TokenKind.LITERAL, self.construct_start, end)
        self.pos = end
        return ScanState.NORMAL

    def _scan_char(self) -> ScanState:
        return self._scan_quoted("'", "字符字面量")


def scan(text: Union[str, bytes]) -> ScanResult:
    """扫描源码（便捷函数）"""
    return Scanner(text).scan()
