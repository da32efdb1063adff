#!/usr/bin/env python3
"""
声明提取器 - 把词法单元序列分组为顶层声明

顶层（大括号深度为0）的声明块以 ';' 结束，或者以函数体/命名空间体的右大括号结束；
struct/union/enum/class 的大括号之后继续读到 ';'（可能带声明符）。
extern "C" { ... } 的内容按顶层处理。
"""

import logging
import re
from dataclasses import replace
from typing import Dict, List, Optional, Tuple, Union

from .declaration import (
    Declaration, DeclarationKind, FunctionSignature, TranslationUnit, function_id
)
from .errors import AmbiguousDeclarationError, DuplicateDefinitionError, ParseError
from .keywords import CALL_LIKE_KEYWORDS, DECL_SPECIFIERS, QUALIFIER_KEYWORDS, TAG_KEYWORDS, TYPE_KEYWORDS
from .scanner import ScanResult, scan
from .tokens import Token, TokenKind

logger = logging.getLogger(__name__)

DEFINE_RE = re.compile(r'#\s*define\s+([A-Za-z_][A-Za-z0-9_]*)(\()?')
INCLUDE_RE = re.compile(r'#\s*include\s*([<"])')

TAG_KINDS = {
    'struct': DeclarationKind.STRUCT,
    'class': DeclarationKind.STRUCT,
    'union': DeclarationKind.UNION,
    'enum': DeclarationKind.ENUM,
}

OPENERS = {'(': ')', '[': ']', '{': '}'}


def _match_group(tokens: List[Token], index: int) -> int:
    """返回 tokens[index] 处开括号对应的闭括号下标，找不到时返回 len(tokens)"""
    open_text = tokens[index].text
    close_text = OPENERS[open_text]
    depth = 0
    for k in range(index, len(tokens)):
        if tokens[k].is_punct(open_text):
            depth += 1
        elif tokens[k].is_punct(close_text):
            depth -= 1
            if depth == 0:
                return k
    return len(tokens)


def _skip_angle_group(tokens: List[Token], index: int) -> int:
    """tokens[index] 为 '<'，返回匹配的 '>' 之后的下标"""
    depth = 0
    for k in range(index, len(tokens)):
        text = tokens[k].text
        if tokens[k].kind != TokenKind.PUNCTUATION:
            continue
        if text == '<':
            depth += 1
        elif text == '>':
            depth -= 1
        elif text == '>>':
            depth -= 2
        elif text in OPENERS:
            continue
        if depth <= 0:
            return k + 1
    return len(tokens)


def split_top_level(tokens: List[Token], separator: str = ',') -> List[List[Token]]:
    """按深度为0的分隔符切分词法单元列表（模板尖括号也计入深度）"""
    parts = [[]]
    depth = 0
    angle = 0
    previous = None
    for tok in tokens:
        if tok.kind == TokenKind.PUNCTUATION:
            if tok.text in OPENERS:
                depth += 1
            elif tok.text in (')', ']', '}'):
                depth -= 1
            elif tok.text == '<' and previous is not None and (previous.is_name or previous.is_keyword('template')):
                angle += 1
            elif tok.text == '>' and angle > 0:
                angle -= 1
            elif tok.text == '>>' and angle > 0:
                angle = max(0, angle - 2)
            elif tok.text == separator and depth == 0 and angle == 0:
                parts.append([])
                previous = tok
                continue
        parts[-1].append(tok)
        previous = tok
    return [p for p in parts if p]


def declarator_name(segment: List[Token]) -> Optional[Token]:
    """
    从一个声明符中取出被声明的名字

    支持 (*name)(...) 形式的函数指针，以及 name[...]、name = ...、name : bits。
    """
    for k in range(len(segment) - 1):
        if segment[k].is_punct('(') and segment[k + 1].text in ('*', '&', '^'):
            for tok in segment[k + 2:]:
                if tok.is_name:
                    return tok
                if tok.is_punct(')'):
                    break
    depth = 0
    name = None
    for tok in segment:
        if tok.kind == TokenKind.PUNCTUATION:
            if depth == 0 and tok.text in ('=', ':', '[', '(', '{'):
                break
            if tok.text in OPENERS:
                depth += 1
            elif tok.text in (')', ']', '}'):
                depth -= 1
            continue
        if depth == 0 and tok.is_name:
            name = tok
    return name


def _default_argument_index(segment: List[Token]) -> Optional[int]:
    """参数中默认实参 '=' 的下标；没有默认实参时返回None"""
    depth = 0
    for k, tok in enumerate(segment):
        if tok.text in OPENERS and tok.kind == TokenKind.PUNCTUATION:
            depth += 1
        elif tok.text in (')', ']', '}') and tok.kind == TokenKind.PUNCTUATION:
            depth -= 1
        elif depth == 0 and tok.is_punct('='):
            return k
    return None


def parse_parameters(tokens: List[Token]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """
    解析参数列表（不含外层括号）

    Returns:
        (参数类型元组, 参数名元组)
    """
    types = []
    names = []
    for segment in split_top_level(tokens):
        # 去掉默认参数
        cut = _default_argument_index(segment)
        if cut is not None:
            segment = segment[:cut]
        if not segment:
            continue
        if len(segment) == 1 and segment[0].is_keyword('void'):
            continue

        name_tok = _parameter_name(segment)
        if name_tok is not None:
            names.append(name_tok.text)
        types.append(' '.join(t.text for t in segment if t is not name_tok))
    return tuple(types), tuple(names)


def strip_default_arguments(header: str) -> str:
    """
    去掉函数头参数表中的默认实参

    C++ 中同一个默认实参只能出现在一处声明里，前向声明保留默认实参时，
    后面的定义要用去掉默认实参的函数头。

    Args:
        header: 函数头文本，例如 "int f(int n, int k = 2)"

    Returns:
        去掉 "= 表达式" 之后的文本，其余字符保持不变
    """
    tokens = scan(header).significant()
    cuts = []
    k = 0
    while k < len(tokens):
        if not tokens[k].is_punct('('):
            k += 1
            continue
        close = _match_group(tokens, k)
        for segment in split_top_level(tokens[k + 1:close]):
            index = _default_argument_index(segment)
            if index is not None and index > 0:
                cuts.append((segment[index - 1].end, segment[-1].end))
        k = close + 1
    for start, end in reversed(cuts):
        header = header[:start] + header[end:]
    return header


def _parameter_name(segment: List[Token]) -> Optional[Token]:
    """参数的名字；只有类型没有名字时返回None"""
    for k in range(len(segment) - 1):
        if segment[k].is_punct('(') and segment[k + 1].text in ('*', '&', '^'):
            for tok in segment[k + 2:]:
                if tok.is_name:
                    return tok
                if tok.is_punct(')'):
                    return None
    # 去掉末尾的数组维度
    end = len(segment)
    while end > 0 and segment[end - 1].is_punct(']'):
        open_index = end - 1
        depth = 0
        while open_index >= 0:
            if segment[open_index].is_punct(']'):
                depth += 1
            elif segment[open_index].is_punct('['):
                depth -= 1
                if depth == 0:
                    break
            open_index -= 1
        end = max(open_index, 0)
    if end < 2:
        return None
    last = segment[end - 1]
    if not last.is_name:
        return None
    before = segment[:end - 1]
    if before[-1].is_punct('::') or before[-1].text in TAG_KEYWORDS or before[-1].is_keyword('typename'):
        return None
    # 前面必须已经有类型
    has_type = any(
        t.is_name or t.text in TYPE_KEYWORDS or t.is_punct('>') or t.is_punct('...')
        for t in before
    )
    return last if has_type else None


class DeclarationExtractor:
    """顶层声明提取器"""

    def __init__(self, scan_result: ScanResult):
        self.text = scan_result.text
        # 注释不参与分组，预处理行在顶层单独处理
        self.tokens = scan_result.significant()
        self.declarations: List[Declaration] = []
        self.includes: List[str] = []
        self.ambiguities: Dict[str, Union[AmbiguousDeclarationError, DuplicateDefinitionError]] = {}

    def extract(self) -> TranslationUnit:
        """
        提取全部顶层声明

        Returns:
            TranslationUnit

        Raises:
            ParseError: 顶层大括号不匹配
        """
        self._extract_range(0, len(self.tokens))
        errors = list(self.ambiguities.values())
        unit = TranslationUnit(
            self.text, list(self.declarations), list(self.includes),
            [e for e in errors if isinstance(e, AmbiguousDeclarationError)],
            [e for e in errors if isinstance(e, DuplicateDefinitionError)],
        )
        logger.info(f"提取到 {len(unit)} 个顶层声明，{len(self.includes)} 条include")
        for error in errors:
            logger.warning(str(error))
        return unit

    def _extract_range(self, lo: int, hi: int):
        tokens = self.tokens
        i = lo
        while i < hi:
            tok = tokens[i]
            if tok.kind == TokenKind.PREPROCESSOR:
                self._handle_directive(tok)
                i += 1
                continue
            if tok.is_punct(';'):
                i += 1
                continue
            if tok.is_punct('}'):
                raise ParseError("多余的右大括号", tok.start)
            if tok.is_punct('{'):
                raise ParseError("顶层出现孤立的代码块", tok.start)
            # extern "C" { ... }
            if (tok.is_keyword('extern') and i + 2 < hi
                    and tokens[i + 1].kind == TokenKind.LITERAL and tokens[i + 2].is_punct('{')):
                close = self._matching_brace(i + 2, hi)
                self._extract_range(i + 3, close)
                i = close + 1
                continue
            end, body_open = self._chunk_end(i, hi)
            chunk = [t for t in tokens[i:end + 1] if t.kind != TokenKind.PREPROCESSOR]
            self._classify(chunk, tokens[i].start, tokens[end].end, body_open)
            i = end + 1

    def _matching_brace(self, open_index: int, hi: int) -> int:
        depth = 0
        for k in range(open_index, hi):
            tok = self.tokens[k]
            if tok.is_punct('{'):
                depth += 1
            elif tok.is_punct('}'):
                depth -= 1
                if depth == 0:
                    return k
        raise ParseError("未闭合的左大括号", self.tokens[open_index].start)

    def _chunk_end(self, start: int, hi: int) -> Tuple[int, Optional[Token]]:
        """返回声明块最后一个词法单元的下标，以及函数体/命名空间体的左大括号"""
        tokens = self.tokens
        paren = 0
        seen_equals = False
        j = start
        while j < hi:
            tok = tokens[j]
            if tok.kind != TokenKind.PUNCTUATION:
                j += 1
                continue
            if tok.text in ('(', '['):
                paren += 1
            elif tok.text in (')', ']'):
                paren -= 1
            elif tok.text == '=' and paren == 0:
                seen_equals = True
            elif tok.text == ';' and paren <= 0:
                return j, None
            elif tok.text == '}':
                raise ParseError("多余的右大括号", tok.start)
            elif tok.text == '{':
                close = self._matching_brace(j, hi)
                if paren <= 0 and not seen_equals and self._is_body_brace(start, j):
                    return close, tok
                j = close
            j += 1
        logger.warning(f"声明在文件末尾未结束 (offset {tokens[start].start})")
        return hi - 1, None

    def _is_body_brace(self, start: int, brace: int) -> bool:
        """判断 '{' 是否开始函数体或命名空间体（而不是类型体或初始化列表）"""
        head = [t for t in self.tokens[start:brace] if t.kind != TokenKind.PREPROCESSOR]
        if not head:
            return False
        index = self._skip_template_prefix(head, 0)
        if index < len(head) and head[index].is_keyword('namespace'):
            return True
        if index < len(head) and head[index].is_keyword('typedef'):
            return False
        return self._find_call_paren(head, index) is not None

    @staticmethod
    def _skip_template_prefix(sig: List[Token], index: int) -> int:
        while index < len(sig) and sig[index].is_keyword('template'):
            if index + 1 < len(sig) and sig[index + 1].is_punct('<'):
                index = _skip_angle_group(sig, index + 1)
            else:
                index += 1
        return index

    @staticmethod
    def _find_call_paren(sig: List[Token], index: int) -> Optional[int]:
        """找到声明名后面的 '('：在 '=' 之前、深度为0、不属于 __attribute__ 等"""
        k = index
        while k < len(sig):
            tok = sig[k]
            if tok.is_punct('=') or tok.is_punct('{') or tok.is_punct(';'):
                return None
            if tok.is_punct('<') and k > 0 and (sig[k - 1].is_name or sig[k - 1].is_keyword('template')):
                k = _skip_angle_group(sig, k)
                continue
            if tok.is_punct('['):
                k = _match_group(sig, k) + 1
                continue
            if tok.is_punct('('):
                previous = sig[k - 1] if k > 0 else None
                if previous is None:
                    return None
                if previous.text in CALL_LIKE_KEYWORDS:
                    k = _match_group(sig, k) + 1
                    continue
                # operator()(...)
                if (previous.is_keyword('operator') and k + 2 < len(sig)
                        and sig[k + 1].is_punct(')') and sig[k + 2].is_punct('(')):
                    return k + 2
                if previous.is_keyword('operator') or (
                        previous.kind == TokenKind.PUNCTUATION and k >= 2 and sig[k - 2].is_keyword('operator')):
                    return k
                if previous.is_name:
                    close = _match_group(sig, k)
                    following = sig[close + 1] if close + 1 < len(sig) else None
                    # API(int) name(...)：前面的括号属于宏，继续向后找
                    if following is not None and (following.is_name or following.text in ('*', '&')
                                                  or following.text in TYPE_KEYWORDS):
                        k = close + 1
                        continue
                    return k
                return None
            k += 1
        return None

    def _handle_directive(self, tok: Token):
        match = DEFINE_RE.match(tok.text)
        if match:
            name = match.group(1)
            function_like = match.group(2) is not None
            parameters: Tuple[str, ...] = ()
            if function_like:
                close = tok.text.find(')', match.end())
                if close != -1:
                    parameters = tuple(
                        p.strip() for p in tok.text[match.end():close].split(',')
                        if re.fullmatch(r'[A-Za-z_][A-Za-z0-9_]*', p.strip())
                    )
            self._add(Declaration(
                id=name, kind=DeclarationKind.MACRO, name=name,
                start=tok.start, end=tok.end, text=tok.text, header_end=tok.end,
                parameters=parameters, is_function_like_macro=function_like,
            ))
            return
        match = INCLUDE_RE.match(tok.text)
        if match:
            include = tok.text.strip()
            # 本地头文件的内容应已拼接进翻译单元，切片中不再引用它
            if match.group(1) == '"':
                logger.debug(f"跳过本地头文件: {include}")
                return
            if include not in self.includes:
                self.includes.append(include)
            return
        logger.debug(f"忽略预处理指令: {tok.text.splitlines()[0]}")

    def _classify(self, sig: List[Token], start: int, end: int, body_open: Optional[Token]):
        """对一个声明块分类并登记"""
        if not sig:
            return
        index = self._skip_template_prefix(sig, 0)
        template_params = self._template_parameters(sig[:index])
        while index < len(sig) and sig[index].is_keyword('__extension__'):
            index += 1
        if index >= len(sig):
            return
        first = sig[index]

        if first.is_keyword('typedef'):
            self._add_typedef(sig, index + 1, start, end)
        elif first.is_keyword('using'):
            self._add_using(sig, index + 1, start, end)
        elif first.is_keyword('namespace'):
            self._add_namespace(sig, index + 1, start, end, body_open)
        elif first.text in ('static_assert', '_Static_assert', 'asm', '__asm__'):
            logger.debug(f"忽略顶层语句: {first.text} (offset {start})")
        else:
            if body_open is None and self._try_add_tagged_type(sig, index, start, end):
                return
            call_paren = self._find_call_paren(sig, index)
            if call_paren is not None and not self._is_function_pointer(sig, call_paren):
                self._add_function(sig, index, call_paren, start, end, body_open, template_params)
            else:
                self._add_global(sig, index, start, end)

    @staticmethod
    def _template_parameters(prefix: List[Token]) -> Tuple[str, ...]:
        names = []
        for k in range(1, len(prefix)):
            if prefix[k].is_name and (prefix[k - 1].is_keyword('typename') or prefix[k - 1].is_keyword('class')
                                      or prefix[k - 1].is_punct('...')):
                names.append(prefix[k].text)
        return tuple(names)

    @staticmethod
    def _is_function_pointer(sig: List[Token], call_paren: int) -> bool:
        # int (*fp)(int); 的第一个括号前面不是名字，这里只需排除 name 前面是 '(' '*' 的情况
        return call_paren >= 2 and sig[call_paren - 2].text in ('*', '&') and \
            call_paren >= 3 and sig[call_paren - 3].is_punct('(')

    def _find_type_body(self, sig: List[Token], index: int) -> Optional[Tuple[int, Optional[Token], int, int]]:
        """
        查找 struct/union/enum/class 关键字及其紧随的类型体

        Returns:
            (标签关键字下标, 标签名, '{'下标, '}'下标)，没有类型体时返回None
        """
        k = index
        while k < len(sig) and sig[k].text not in TAG_KEYWORDS:
            if sig[k].text not in QUALIFIER_KEYWORDS and not sig[k].is_keyword('typedef'):
                return None
            k += 1
        if k >= len(sig):
            return None
        tag_index = k
        k += 1
        # enum class / enum struct
        if sig[tag_index].is_keyword('enum') and k < len(sig) and sig[k].text in ('class', 'struct'):
            k += 1
        tag = None
        while k < len(sig):
            tok = sig[k]
            if tok.text in CALL_LIKE_KEYWORDS and k + 1 < len(sig) and sig[k + 1].is_punct('('):
                k = _match_group(sig, k + 1) + 1
                continue
            if tok.is_name or tok.text in ('final', 'alignas'):
                if tok.is_name and tok.text != 'final':
                    tag = tok
                k += 1
                continue
            if tok.is_punct('::'):
                k += 1
                continue
            if tok.is_punct('<') and tag is not None:
                k = _skip_angle_group(sig, k)
                continue
            if tok.is_punct(':'):
                # 基类列表或枚举底层类型
                while k < len(sig) and not sig[k].is_punct('{') and not sig[k].is_punct(';'):
                    k += 1
                continue
            if tok.is_punct('{'):
                return tag_index, tag, k, _match_group(sig, k)
            return None
        return None

    def _enumerators(self, body: List[Token]) -> List[str]:
        names = []
        for segment in split_top_level(body):
            if segment[0].is_name:
                names.append(segment[0].text)
        return names

    def _try_add_tagged_type(self, sig: List[Token], index: int, start: int, end: int) -> bool:
        """处理以 struct/union/enum/class 开头的声明；不是类型声明时返回False"""
        k = index
        while k < len(sig) and sig[k].text in QUALIFIER_KEYWORDS:
            k += 1
        if k >= len(sig) or sig[k].text not in TAG_KEYWORDS:
            return False
        keyword = sig[k].text
        kind = TAG_KINDS[keyword]

        found = self._find_type_body(sig, index)
        if found is None:
            # struct X; 前向声明
            rest = sig[k + 1:]
            if rest and rest[0].text in ('class', 'struct') and keyword == 'enum':
                rest = rest[1:]
            if len(rest) == 2 and rest[0].is_name and rest[1].is_punct(';'):
                tag = rest[0].text
                self._add(Declaration(
                    id=f"{keyword} {tag}", kind=kind, name=tag, start=start, end=end,
                    text=self.text[start:end], header_end=end, is_definition=False,
                    tag=tag, tag_keyword=keyword,
                ))
                return True
            return False

        tag_index, tag, open_index, close_index = found
        body = sig[open_index + 1:close_index]
        trailing = [t for t in sig[close_index + 1:] if not t.is_punct(';')]
        declarators = [declarator_name(seg) for seg in split_top_level(trailing)]
        declarators = [d.text for d in declarators if d is not None]
        aliases = self._enumerators(body) if kind == DeclarationKind.ENUM else []

        if tag is None and declarators:
            # struct { ... } g; 只声明了变量
            name = declarators[0]
            self._add(Declaration(
                id=name, kind=DeclarationKind.GLOBAL, name=name, start=start, end=end,
                text=self.text[start:end], header_end=end,
                aliases=tuple(declarators[1:] + aliases),
                is_definition=not sig[index].is_keyword('extern'),
            ))
            return True

        if tag is None:
            name = f"<anonymous {keyword}@{start}>"
            decl_id = name
        else:
            name = tag.text
            decl_id = f"{keyword} {name}"
        self._add(Declaration(
            id=decl_id, kind=kind, name=name, start=start, end=end,
            text=self.text[start:end], header_end=end,
            aliases=tuple(declarators + aliases),
            tag=tag.text if tag is not None else None, tag_keyword=keyword,
        ))
        return True

    def _add_typedef(self, sig: List[Token], index: int, start: int, end: int):
        aliases: List[str] = []
        tag = None
        tag_keyword = None
        found = self._find_type_body(sig, index)
        if found is not None:
            tag_index, tag_tok, open_index, close_index = found
            tag_keyword = sig[tag_index].text
            tag = tag_tok.text if tag_tok is not None else None
            if tag_keyword == 'enum':
                aliases.extend(self._enumerators(sig[open_index + 1:close_index]))
            declarator_tokens = sig[close_index + 1:]
        else:
            declarator_tokens = sig[index:]
        declarator_tokens = [t for t in declarator_tokens if not t.is_punct(';')]

        names = []
        for segment in split_top_level(declarator_tokens):
            name_tok = declarator_name(segment)
            if name_tok is not None:
                names.append(name_tok.text)
        if not names:
            if tag is None:
                logger.warning(f"无法确定typedef的名字 (offset {start})")
                return
            names = [tag]
        if tag is not None and tag not in names:
            aliases.insert(0, tag)
        name = names[0]
        self._add(Declaration(
            id=name, kind=DeclarationKind.TYPEDEF, name=name, start=start, end=end,
            text=self.text[start:end], header_end=end,
            aliases=tuple(names[1:] + aliases), tag=tag, tag_keyword=tag_keyword,
        ))

    def _add_using(self, sig: List[Token], index: int, start: int, end: int):
        # using X = type;
        if index + 1 < len(sig) and sig[index].is_name and sig[index + 1].is_punct('='):
            name = sig[index].text
            self._add(Declaration(
                id=name, kind=DeclarationKind.TYPEDEF, name=name, start=start, end=end,
                text=self.text[start:end], header_end=end,
            ))
        else:
            logger.debug(f"忽略using指令 (offset {start})")

    def _add_namespace(self, sig: List[Token], index: int, start: int, end: int,
                       body_open: Optional[Token]):
        name_parts = []
        k = index
        while k < len(sig) and (sig[k].is_name or sig[k].is_punct('::') or sig[k].is_keyword('inline')):
            if sig[k].is_name:
                name_parts.append(sig[k].text)
            k += 1
        name = '::'.join(name_parts) if name_parts else f"<anonymous namespace@{start}>"

        aliases: List[str] = list(name_parts[1:])
        if body_open is not None:
            # 命名空间内部声明的名字作为别名
            lo = next(n for n, t in enumerate(self.tokens) if t.start == body_open.start) + 1
            hi = self._matching_brace(lo - 1, len(self.tokens))
            inner = DeclarationExtractor(ScanResult(self.text, self.tokens))
            inner._extract_range(lo, hi)
            for decl in inner.declarations:
                for alias in decl.names:
                    if not alias.startswith('<') and alias not in aliases:
                        aliases.append(alias)
        self._add(Declaration(
            id=name, kind=DeclarationKind.NAMESPACE, name=name, start=start, end=end,
            text=self.text[start:end],
            header_end=body_open.start if body_open is not None else end,
            aliases=tuple(aliases),
        ))

    def _add_function(self, sig: List[Token], index: int, call_paren: int, start: int, end: int,
                      body_open: Optional[Token], template_params: Tuple[str, ...]):
        # 函数名（可能是 operator 或带作用域限定）
        name_end = call_paren
        if sig[call_paren - 1].is_punct(')') and call_paren >= 3 and sig[call_paren - 3].is_keyword('operator'):
            name_start = call_paren - 3
        elif sig[call_paren - 1].is_keyword('operator'):
            name_start = call_paren - 1
        elif call_paren >= 2 and sig[call_paren - 2].is_keyword('operator'):
            name_start = call_paren - 2
        else:
            name_start = call_paren - 1
            if name_start >= 1 and sig[name_start - 1].is_punct('~'):
                name_start -= 1
        name = ''.join(t.text for t in sig[name_start:name_end])

        qualifier_start = name_start
        while qualifier_start >= 2 and sig[qualifier_start - 1].is_punct('::') and sig[qualifier_start - 2].is_name:
            qualifier_start -= 2
        if qualifier_start >= 1 and sig[qualifier_start - 1].is_punct('::'):
            qualifier_start -= 1

        close_paren = _match_group(sig, call_paren)
        parameter_types, parameter_names = parse_parameters(sig[call_paren + 1:close_paren])

        return_tokens = []
        k = index
        while k < qualifier_start:
            tok = sig[k]
            if tok.text in CALL_LIKE_KEYWORDS and k + 1 < qualifier_start and sig[k + 1].is_punct('('):
                k = _match_group(sig, k + 1) + 1
                continue
            if tok.text not in DECL_SPECIFIERS and tok.kind != TokenKind.LITERAL:
                return_tokens.append(tok.text)
            k += 1
        return_type = ' '.join(return_tokens)
        # 尾置返回类型 auto f() -> T
        stop = len(sig) if body_open is None else next(
            (n for n, t in enumerate(sig) if t is body_open), len(sig))
        for n in range(close_paren + 1, stop):
            if sig[n].is_punct('->'):
                trailing = [t.text for t in sig[n + 1:stop] if not t.is_punct(';')]
                return_type = ' '.join(trailing)
                break

        signature = FunctionSignature(return_type, parameter_types)
        self._add(Declaration(
            id=function_id(name, signature), kind=DeclarationKind.FUNCTION, name=name,
            start=start, end=end, text=self.text[start:end], signature=signature,
            header_end=body_open.start if body_open is not None else end,
            parameters=parameter_names + template_params,
            is_definition=body_open is not None,
        ))

    def _add_global(self, sig: List[Token], index: int, start: int, end: int):
        body = [t for t in sig[index:] if not t.is_punct(';')]
        names = []
        for segment in split_top_level(body):
            name_tok = declarator_name(segment)
            if name_tok is not None:
                names.append(name_tok.text)
        if not names:
            logger.debug(f"无法识别的顶层声明，已忽略 (offset {start})")
            return
        has_initializer = any(t.is_punct('=') for t in body)
        name = names[0]
        self._add(Declaration(
            id=name, kind=DeclarationKind.GLOBAL, name=name, start=start, end=end,
            text=self.text[start:end], header_end=end, aliases=tuple(names[1:]),
            is_definition=has_initializer or not sig[index].is_keyword('extern'),
        ))

    def _add(self, decl: Declaration):
        """登记声明；原型与定义合并，重复定义标记为歧义"""
        existing_index = next(
            (n for n, d in enumerate(self.declarations) if d.id == decl.id), None)
        if existing_index is None:
            logger.debug(f"找到声明: {decl}")
            self.declarations.append(decl)
            return

        existing = self.declarations[existing_index]
        if existing.is_definition and not decl.is_definition:
            logger.debug(f"忽略已定义声明的原型: {decl.id}")
            return
        if not existing.is_definition:
            # 定义替换之前的原型/前向声明
            logger.debug(f"定义替换原型: {decl.id}")
            if decl.is_function and decl.is_definition:
                decl = self._keep_default_arguments(existing, decl)
            del self.declarations[existing_index]
            self.declarations.append(decl)
            return
        if ' '.join(existing.text.split()) == ' '.join(decl.text.split()):
            logger.debug(f"忽略完全相同的重复定义: {decl.id}")
            return

        # 两个定义：都保留并标记为歧义；函数单独记为重复定义
        self.declarations[existing_index] = replace(existing, ambiguous=True)
        duplicate = replace(decl, id=f"{decl.id}@{decl.start}", ambiguous=True)
        self.declarations.append(duplicate)
        error = self.ambiguities.get(decl.id)
        if error is None:
            error_type = DuplicateDefinitionError if decl.is_function else AmbiguousDeclarationError
            self.ambiguities[decl.id] = error_type(decl.name, [existing.id, duplicate.id])
        else:
            error.declaration_ids.append(duplicate.id)

    @staticmethod
    def _keep_default_arguments(prototype: Declaration, definition: Declaration) -> Declaration:
        """原型带默认实参而定义没有时，把原型文本记在定义上"""
        prototype_header = prototype.header_text
        if strip_default_arguments(prototype_header) == prototype_header:
            return definition
        definition_header = definition.header_text
        if strip_default_arguments(definition_header) != definition_header:
            return definition
        logger.debug(f"保留原型中的默认实参: {definition.id}")
        return replace(definition, prototype_text=prototype_header)


def extract_declarations(source) -> TranslationUnit:
    """扫描并提取声明（便捷函数）"""
    return DeclarationExtractor(scan(source)).extract()
