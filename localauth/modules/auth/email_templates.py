"""HTML bodies for the transactional emails.

``%recipient.name%`` placeholders are left for the email provider to fill in
per recipient; ``{{ ... }}`` expressions are rendered locally.
"""

BASE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>{% block title %}{{ app_name }}{% endblock %}</title>
<style type="text/css">
body { margin: 0; padding: 0; font-family: "Helvetica Neue", Helvetica, Arial, sans-serif; }
.content p { margin: 0; padding: 1em 0 0 0; line-height: 1.5em; font-size: 14px; color: #000; }
</style>
</head>
<body style="background-color: #EEEEEE;">
<center>
<table width="640" border="0" cellpadding="0" cellspacing="0"
       style="background-color: #FFFFFF; border-radius: 10px;">
<tr>
<td width="50">&nbsp;</td>
<td class="content" width="540" valign="top" style="text-align: left;">
{% block content %}{% endblock %}
</td>
<td width="50">&nbsp;</td>
</tr>
</table>
</center>
</body>
</html>
"""

WELCOME_HTML = """{% extends "auth/base.html" %}
{% block title %}Welcome New User{% endblock %}
{% block content %}
<p>Hello %recipient.firstname% %recipient.lastname%,<br/><br/>
Welcome to {{ app_name }}. Thank you for signing up.<br/><br/></p>
{% endblock %}
"""

PASSWORD_RESET_HTML = """{% extends "auth/base.html" %}
{% block title %}Password Reset{% endblock %}
{% block content %}
<p>Hello %recipient.firstname% %recipient.lastname%,<br/><br/>
Forgot your password? No problem!<br/><br/>
To reset your password, click the following link:<br/>
<a href="{{ reset_url_base }}%recipient.token%">Reset Password</a><br/><br/>
If you did not request to have your password reset you can safely ignore this
email. Rest assured your account is safe.<br/><br/></p>
{% endblock %}
"""

PASSWORD_RESET_CONFIRM_HTML = """{% extends "auth/base.html" %}
{% block title %}Password Reset Complete{% endblock %}
{% block content %}
<p>Hello %recipient.firstname% %recipient.lastname%,<br/><br/>
Your account's password was recently changed.<br/><br/></p>
{% endblock %}
"""

TEMPLATES = {
    "auth/base.html": BASE_HTML,
    "auth/welcome.html": WELCOME_HTML,
    "auth/password_reset.html": PASSWORD_RESET_HTML,
    "auth/password_reset_confirm.html": PASSWORD_RESET_CONFIRM_HTML,
}
