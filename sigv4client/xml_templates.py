action_response_xml = """<?xml version="1.0" encoding="UTF-8"?>
<{action}Response xmlns="http://{service}.amazonaws.com/doc/{version}/">
    <requestId>{request_id}</requestId>
    <return>true</return>
</{action}Response>"""

error_xml = """<?xml version="1.0" encoding="UTF-8"?>
<Response>
    <Errors>
        <Error>
            <Code>{code}</Code>
            <Message>{message}</Message>
        </Error>
    </Errors>
    <RequestID>{request_id}</RequestID>
</Response>"""
