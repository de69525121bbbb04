from prowflake.parsers.junit import parse_junit_xml, TestResultParser
